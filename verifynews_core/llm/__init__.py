"""AI provider adapters, response parsing and the provider fallback chain."""
