"""Clients for tools and services outside this process."""

from .transporter import ITMSTransporter, TransporterError, TransporterRunner

__all__ = ["ITMSTransporter", "TransporterError", "TransporterRunner"]
