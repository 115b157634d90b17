"""Services Layer: operations that wire scopes, plans, eager loads and cache policy together."""
