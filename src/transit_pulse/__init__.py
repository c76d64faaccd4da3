"""Transit Pulse - live route status from static GTFS and GTFS-realtime feeds."""

__version__ = "0.1.0"
