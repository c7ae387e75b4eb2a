"""Command line front end for the video storefront generator."""

__version__ = "0.1.0"
