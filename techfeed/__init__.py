"""techfeed — authenticated technology news portal."""

__version__ = "0.1.0"
