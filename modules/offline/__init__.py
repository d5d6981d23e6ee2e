"""Offline cache: network-first fetching with a versioned cache fallback.

Usage:
    from modules.offline.cache import CacheStorage, OfflineCache

    cache = OfflineCache("https://hub.example.com", client, CacheStorage())
    await cache.install()
    await cache.activate()
    response = await cache.fetch(httpx.Request("GET", "https://hub.example.com/logo.png"))
"""
