"""In-memory sharing of secrets between namespaces: export matching, image pull secret merging and token caching."""

__version__ = "0.1.0"