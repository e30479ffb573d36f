"""soundgood — instrument rental console for the Soundgood music school."""

__version__ = "0.3.0"
