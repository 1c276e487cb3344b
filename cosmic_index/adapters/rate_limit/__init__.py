"""Fixed-window counter stores behind the rate limiter.

``memory`` keeps counters in-process; ``redis`` shares them between API
instances. ``RATE_LIMIT_BACKEND`` selects one at app build time.
"""
