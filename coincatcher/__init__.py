"""CoinCatcher rewards bot"""

__version__ = "0.4.0"
