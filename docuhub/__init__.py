"""DocuHub: documentation and API spec management backend."""

__version__ = "1.0.0"
