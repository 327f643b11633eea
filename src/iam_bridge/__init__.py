"""IAM bridge.

Binds a local user directory to an external OpenID-Connect identity provider:
authenticates sign-ins from verified ID tokens, guards against secondary-email
impersonation, and keeps each account's IAM uid and secondary emails in sync
with the provider's profile record.
"""

__version__ = "0.1.0"
