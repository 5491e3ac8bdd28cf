# ABOUTME: BookHub: a command-line bookshop with catalog search, carts, accounts, and sessions.
# ABOUTME: The package root only carries the version; see bookhub.shop for the service container.

__version__ = "0.1.0"
