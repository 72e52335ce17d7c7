"""BrandLens: multi-provider brand intelligence pipeline."""

__version__ = "0.1.0"
