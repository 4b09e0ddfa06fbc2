"""HTTP gateway for the freight ERP trip and payment workflow."""

__version__ = "0.1.0"
