"""Core configuration, cryptography and exceptions."""
