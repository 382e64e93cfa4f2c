"""
SubShare

Marketplace backend for renting out shared streaming-service credentials by the
hour. Users fund a wallet, owners list subscriptions, buyers unlock timed access
and the platform keeps a commission on every purchase.
"""

__version__ = "1.0.0"
__author__ = "SubShare Team"
