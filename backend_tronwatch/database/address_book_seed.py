"""
Known TRON addresses seeded into address_book on init_db().

Without names, pool aggregates show raw 34-character addresses. Operators
can add rows directly; seeding never overwrites an existing address.
"""

from __future__ import annotations

ADDRESS_BOOK_SEED: list[tuple[str, str, str]] = [
    # (address, name, category)
    ("TEMkRxLtCCdL4BCwbPXbbNWe4a9gtJ7kq7", "Tron Energy Market", "pool"),
    ("TGNuLPkkgsf42xdRSXYpVSqUvtFT4HEupg", "Feee.io Pool", "pool"),
    ("TUeq6WKpJZXMDQ4PgnMgL1xVTAETBAQo9f", "Feee.io", "pool"),
    ("TYoAtLwBpWbknJuL4ACW6oXm4AVVbPRXDH", "Feee.io C2C", "pool"),
    ("TMq4o2LTj13WqcTCc2GCyuBwWAxnvsBD2v", "Feee.io B2B", "pool"),
    ("TXUwRhntqX3kyALhtpC74JP8Nt6m2VMiYC", "Tron Save Pool", "pool"),
    ("TWZEhq5JuUVvGtutNgnRBATbF8BnHGyn4S", "Tron Save", "pool"),
    ("TBu4CN53XnwBPE93FNLnEsbMsqSs2Mw4kM", "Tron Pulse", "pool"),
    ("TLwpQv9N6uXZQeE4jUudLPjcRffbXXAuru", "Tron Energize", "pool"),
    ("TKHgPuoqW4XNGJtwuFwExA7hcUdTkwcLXn", "Nitron Energy", "pool"),
    ("TXYqcWRnNP1bGsa9tzjsEJiKAYwMRonwMv", "Tronify", "pool"),
    ("TQ9KMdd6xkP8HqwmAL7dmT45YifyaAm6CZ", "Tron Lending", "pool"),
    ("TP3cCMDakVnVseoWTAz3ZDfEB8CtCxKZbi", "Energy Father", "pool"),
    ("TUfAMQM81RLMdquBSaFytsXxEet7AKKKKK", "MeFree.Net", "pool"),
    ("TBzCv4dEX4N3VewR3pDifLWNT8dbGyfrou", "Tron NRG", "pool"),
    ("TEX5nLeFJ1dyazhJC3P9eYJs7hxgk7knJY", "Tron Energy Billing", "pool"),
    ("TX5PK3Y7qovSQxQBH9auxwqq66LJzn2eAt", "1TRXU.com", "pool"),
    ("TWHjkeWDmWjXRi7dbvyaTLnRQranux2BzL", "trxres.com Pool", "pool"),
    ("TQCeP7EEAxoeqW6DeUaf2biviYDa9zAbMW", "TRX369", "pool"),
    ("TDYPFoZ2Q6aY9kpVbLTcQycuhCEKsNYMFX", "trxx.io Pool", "pool"),
    ("TJRxLPZHbNmcqhiJBHNxxnq6n4oobwWVtt", "tron.energy (All)", "pool"),
    ("TFsZdoEqhg7TAMeMQTMQ2nnqYictbpmrSs", "ippp.io Pool", "pool"),
    ("TZ33cAAURYz2qSUGB4bzKLiedg9wuMsSas", "apitrx.com Pool", "pool"),
    ("TDqSquXBgUCLYvYC4XZgrprLK589dkhSCf", "Binance", "exchange"),
    ("TV6MuMXfmLbBqPZvBHdwFsDnQeVfnmiuSi", "Binance", "exchange"),
    ("TTd9qHyjqiUkfTxe3gotbuTMpjU8LEbpkN", "Kraken", "exchange"),
    ("TUpHuDkiCCmwaTZBHZvQdwWzGNm5t8J2b9", "KuCoin", "exchange"),
    ("TU3kjFuhtEo42tsCBtfYUAZxoqQ4yuSLQ5", "sTRX", "notable"),
    ("T9yD14Nj9j7xAB4dbGeiX9h8unkKHxuWwb", "[Black Hole]", "notable"),
]
