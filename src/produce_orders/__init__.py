"""Produce Order Service - B2B produce orders between one orderer and many farmers."""

__version__ = "1.0.0"
