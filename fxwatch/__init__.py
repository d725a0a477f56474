"""FX News Watch - polls FX news sources, summarizes new articles and delivers them."""

__version__ = "0.1.0"
