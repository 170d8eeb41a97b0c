"""Print a long lived bearer token for an administrator account.

Usage:
    python create_token.py <account_id>
"""
import sys

from uconnect_api.app.core.security import ROLE_ADMINISTRATOR, create_access_token

account_id = int(sys.argv[1]) if len(sys.argv) > 1 else 1
# 365 days; the account must exist, be active and hold the administrator role.
token = create_access_token({"sub": str(account_id), "role": ROLE_ADMINISTRATOR}, expires_delta=365*24*60*60)
print(token)
