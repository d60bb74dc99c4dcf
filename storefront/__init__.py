"""Demo storefront backend: cart checkout against simulated payment providers."""

__version__ = "0.1.0"
