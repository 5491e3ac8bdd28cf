# ABOUTME: Catalog domain: book types, the query engine, and listing creation.
# ABOUTME: Persistence for these types lives in bookhub.db.
