"""DriverPro Notifier: reservation status listener and customer email dispatcher."""

__version__ = "1.0.0"
