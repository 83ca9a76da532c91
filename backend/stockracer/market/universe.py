"""Tradeable symbol universe, grouped by sector."""

SECTORS: dict[str, list[str]] = {
    "tech": [
        "AAPL", "MSFT", "GOOGL", "AMZN", "META", "NVDA", "TSLA", "AVGO", "ORCL", "CRM",
        "AMD", "INTC", "CSCO", "ADBE", "NOW", "INTU", "IBM", "QCOM", "TXN", "AMAT",
        "MU", "LRCX", "ADI", "KLAC", "SNPS", "CDNS", "MRVL", "FTNT", "PANW", "CRWD",
    ],
    "finance": [
        "JPM", "V", "MA", "BAC", "WFC", "GS", "MS", "BLK", "SCHW", "AXP",
        "C", "USB", "PNC", "TFC", "COF", "BK", "STT", "FITB", "RF", "CFG",
    ],
    "healthcare": [
        "UNH", "JNJ", "LLY", "PFE", "ABBV", "MRK", "TMO", "ABT", "DHR", "BMY",
        "AMGN", "MDT", "ISRG", "GILD", "VRTX", "REGN", "BSX", "ZTS", "SYK", "BDX",
    ],
    "consumer": [
        "WMT", "PG", "KO", "PEP", "COST", "MCD", "NKE", "SBUX", "TGT", "LOW",
        "HD", "TJX", "ROST", "DG", "DLTR", "YUM", "DPZ", "CMG", "ORLY", "AZO",
    ],
    "industrial": [
        "CAT", "BA", "GE", "HON", "UNP", "UPS", "RTX", "LMT", "NOC", "GD",
        "DE", "MMM", "EMR", "ITW", "PH", "ROK", "ETN", "CMI", "PCAR", "WM",
    ],
    "energy": [
        "XOM", "CVX", "COP", "SLB", "EOG", "PXD", "MPC", "VLO", "PSX", "OXY",
        "DVN", "HAL", "FANG", "HES", "BKR", "CTRA", "OVV", "APA", "MRO", "AR",
    ],
    "communication": [
        "DIS", "CMCSA", "NFLX", "T", "VZ", "TMUS", "CHTR", "EA", "TTWO", "WBD",
        "PARA", "LYV", "MTCH", "RBLX", "SNAP", "PINS",
    ],
    "realestate": ["AMT", "PLD", "CCI", "EQIX", "PSA", "O", "WELL", "DLR", "SPG", "VICI"],
    "utilities": ["NEE", "DUK", "SO", "D", "AEP", "SRE", "EXC", "XEL", "ED", "WEC"],
    "materials": ["LIN", "APD", "SHW", "ECL", "NEM", "FCX", "CTVA", "DD", "DOW", "PPG"],
    "etfs": [
        "SPY", "QQQ", "IWM", "DIA", "VTI", "VOO", "ARKK", "XLK", "XLF", "XLE",
        "XLV", "XLI", "SOXX",
    ],
    "meme": ["GME", "AMC", "PLTR", "RIVN", "LCID", "SOFI", "HOOD", "COIN", "MSTR", "AFRM"],
    "growth": ["SHOP", "NET", "DDOG", "SNOW", "ZS", "MDB", "OKTA", "BILL", "HUBS", "VEEV"],
    "international": ["TSM", "BABA", "NVO", "ASML", "SAP", "TM", "SNY", "AZN", "SHEL", "BP"],
}

TRADEABLE_STOCKS: list[str] = [symbol for symbols in SECTORS.values() for symbol in symbols]
