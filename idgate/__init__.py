"""idgate - unified local and delegated authentication for Flask applications."""

__version__ = "0.1.0"
