"""Deep links from calendar events to Trading Economics indicator pages."""

COUNTRY_SLUGS = {
    "USD": "united-states",
    "EUR": "euro-area",
    "GBP": "united-kingdom",
    "JPY": "japan",
    "AUD": "australia",
    "NZD": "new-zealand",
    "CAD": "canada",
    "CHF": "switzerland",
    "CNY": "china",
}

# First matching entry wins, so rate decisions precede generic terms
INDICATOR_SLUGS: list[tuple[tuple[str, ...], str]] = [
    (("interest rate", "decision", "rate"), "interest-rate"),
    (("inflation", "cpi"), "inflation-rate"),
    (("gdp",), "gdp-growth"),
    (("unemployment", "job"), "unemployment-rate"),
    (("retail sales",), "retail-sales"),
    (("pmi", "manufacturing"), "manufacturing-pmi"),
    (("services",), "services-pmi"),
    (("trade balance",), "balance-of-trade"),
    (("consumer confidence", "sentiment"), "consumer-confidence"),
    (("building permits", "housing"), "building-permits"),
    (("producer prices", "ppi"), "producer-prices"),
]


def trading_economics_link(currency: str, title: str) -> str | None:
    """Indicator page for an event, or None when the country or indicator is unknown."""
    country = COUNTRY_SLUGS.get(currency.upper())
    if not country:
        return None

    lowered = title.lower()
    for keywords, slug in INDICATOR_SLUGS:
        if any(k in lowered for k in keywords):
            return f"https://tradingeconomics.com/{country}/{slug}"
    return None
