"""Adapters binding the core to IRC, Nostr relays and HTTP."""
