"""WhatsApp attendant for a print and copy shop."""

__version__ = "0.1.0"
