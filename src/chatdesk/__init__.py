"""Chatdesk: accounts, support tickets and a lightweight chat backend."""

__version__ = "0.1.0"
