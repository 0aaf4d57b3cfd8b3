"""Relay de mensajes WhatsApp entre un asistente de código y su operador."""

__version__ = "1.0.0"
