# ABOUTME: SQL DDL statements for the BookHub store schema.
# ABOUTME: Defines the books/reviews tables (v1) and the users table migration (v2).

SCHEMA_V1 = """
-- Core catalog table. rowid preserves insertion order.
CREATE TABLE books (
    id               TEXT PRIMARY KEY,
    title            TEXT NOT NULL,
    author           TEXT,
    publisher        TEXT,
    publication_date TEXT,
    language         TEXT,
    isbn             TEXT,
    pages            INTEGER NOT NULL DEFAULT 0,
    description      TEXT,
    image_url        TEXT,
    original_price   REAL NOT NULL DEFAULT 0,
    current_price    REAL NOT NULL DEFAULT 0,
    discount         REAL NOT NULL DEFAULT 0,
    categories       TEXT,
    rating           REAL NOT NULL DEFAULT 0,
    review_count     INTEGER NOT NULL DEFAULT 0,
    total_purchases  INTEGER NOT NULL DEFAULT 0,
    seller_id        TEXT,
    holder_id        TEXT,
    upload_date      TEXT,
    borrow_date      TEXT,
    return_date      TEXT,
    featured         INTEGER NOT NULL DEFAULT 0,
    date_modified    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE UNIQUE INDEX idx_books_isbn ON books(isbn) WHERE isbn IS NOT NULL;
CREATE INDEX idx_books_title ON books(title);
CREATE INDEX idx_books_author ON books(author);
CREATE INDEX idx_books_seller ON books(seller_id) WHERE seller_id IS NOT NULL;
CREATE INDEX idx_books_holder ON books(holder_id) WHERE holder_id IS NOT NULL;
CREATE INDEX idx_books_featured ON books(featured);

-- Append-only buyer reviews; id order is chronological order.
CREATE TABLE reviews (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id     TEXT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    reviewer_id TEXT NOT NULL,
    rating      REAL NOT NULL CHECK (rating BETWEEN 1 AND 5),
    comment     TEXT,
    review_date TEXT NOT NULL
);

CREATE INDEX idx_reviews_book ON reviews(book_id);

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

MIGRATION_V2 = """
-- Registered accounts. username and email are stored case-folded.
CREATE TABLE users (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id        TEXT NOT NULL,
    full_name      TEXT NOT NULL,
    email          TEXT NOT NULL,
    username       TEXT NOT NULL,
    password_hash  TEXT NOT NULL,
    salt           TEXT NOT NULL,
    location       TEXT,
    image_path     TEXT,
    rating         REAL,
    uploaded_books TEXT NOT NULL DEFAULT '[]',
    borrowed_books TEXT NOT NULL DEFAULT '[]',
    buyer_reviews  TEXT NOT NULL DEFAULT '[]',
    created_at     INTEGER NOT NULL
);

CREATE UNIQUE INDEX idx_users_user_id ON users(user_id);
CREATE UNIQUE INDEX idx_users_username ON users(username);
CREATE UNIQUE INDEX idx_users_email ON users(email);

INSERT INTO schema_version (version) VALUES (2);
"""

MIGRATIONS: list[tuple[int, str]] = [
    (2, MIGRATION_V2),
]
