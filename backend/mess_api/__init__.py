"""Smart Mess API: menu voting, meal bookings, QR check-in and points."""

__version__ = "1.0.0"
