"""Core domain package for the bridge.

Core contains the connection state machine, filtering, rate limiting and
fan-out publishing without any IRC, Nostr or HTTP specific code, keeping the
relay logic portable and testable with fakes.
"""
