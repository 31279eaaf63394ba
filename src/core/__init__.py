"""Core domain package for wabridge.

Core holds identity resolution, the message store, querying and the
auto-reply policy without any gateway, HTTP or file-specific code.
"""
