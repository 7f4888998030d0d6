"""Register Verus identities: name commitment, confirmation, registration."""

__version__ = "0.1.0"
