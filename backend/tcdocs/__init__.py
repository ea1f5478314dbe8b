"""TCDocs — training-center document retrieval & preview backend."""

__version__ = "0.3.0"
