"""Database schema for the mdquery index."""

SCHEMA_VERSION = 1

# Chunk vectors keyed by (content hash, chunk sequence). Dropped and recreated
# whenever the embedding dimension changes.
VECTORS_TABLE = """
CREATE TABLE IF NOT EXISTS content_vectors (
    hash TEXT NOT NULL,
    seq INTEGER NOT NULL DEFAULT 0,
    pos INTEGER NOT NULL DEFAULT 0,
    model TEXT NOT NULL,
    embedded_at TEXT NOT NULL,
    embedding BLOB NOT NULL,
    PRIMARY KEY (hash, seq)
);
CREATE INDEX IF NOT EXISTS idx_content_vectors_model ON content_vectors(model);
"""

SCHEMA = VECTORS_TABLE + """
-- Collections: one row per (root directory, glob pattern) pair
CREATE TABLE IF NOT EXISTS collections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    pwd TEXT NOT NULL,
    glob_pattern TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE(pwd, glob_pattern)
);

-- Documents: soft-deleted through the active flag, never erased by indexing
CREATE TABLE IF NOT EXISTS documents (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    collection_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    title TEXT NOT NULL,
    hash TEXT NOT NULL,
    filepath TEXT NOT NULL,
    display_path TEXT NOT NULL DEFAULT '',
    body TEXT NOT NULL,
    created_at TEXT NOT NULL,
    modified_at TEXT NOT NULL,
    active INTEGER NOT NULL DEFAULT 1,
    FOREIGN KEY (collection_id) REFERENCES collections(id)
);

-- Longest-prefix annotations for paths
CREATE TABLE IF NOT EXISTS path_contexts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    path_prefix TEXT NOT NULL UNIQUE,
    context TEXT NOT NULL,
    created_at TEXT NOT NULL
);

-- Cached model responses keyed by request hash
CREATE TABLE IF NOT EXISTS model_cache (
    hash TEXT PRIMARY KEY,
    result TEXT NOT NULL,
    created_at TEXT NOT NULL
);

-- Index metadata (schema version, vector dimension, embedding model)
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);

-- Full-text index over titles and bodies
CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(
    title, body,
    content='documents',
    content_rowid='id',
    tokenize='porter unicode61'
);

CREATE TRIGGER IF NOT EXISTS documents_ai AFTER INSERT ON documents BEGIN
    INSERT INTO documents_fts(rowid, title, body) VALUES (new.id, new.title, new.body);
END;

CREATE TRIGGER IF NOT EXISTS documents_ad AFTER DELETE ON documents BEGIN
    INSERT INTO documents_fts(documents_fts, rowid, title, body)
    VALUES ('delete', old.id, old.title, old.body);
END;

CREATE TRIGGER IF NOT EXISTS documents_au AFTER UPDATE OF title, body ON documents BEGIN
    INSERT INTO documents_fts(documents_fts, rowid, title, body)
    VALUES ('delete', old.id, old.title, old.body);
    INSERT INTO documents_fts(rowid, title, body) VALUES (new.id, new.title, new.body);
END;

-- Indexes for efficient queries
CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection_id, active);
CREATE INDEX IF NOT EXISTS idx_documents_hash ON documents(hash);
CREATE UNIQUE INDEX IF NOT EXISTS idx_documents_filepath_active
    ON documents(filepath) WHERE active = 1;
"""
