# ABOUTME: Identity: password hashing and the credential store.
# ABOUTME: Account rows themselves are persisted by bookhub.db.accounts.
