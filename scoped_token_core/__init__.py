"""Scoped access tokens: issue, validate-and-consume, revoke and resolve."""
