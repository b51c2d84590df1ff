"""SQLite schema for the relationship store."""

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    first_name TEXT,
    last_name TEXT,
    maiden_name TEXT,
    nickname TEXT,
    middle_name TEXT,
    birth_date TEXT,
    death_date TEXT,
    gender TEXT NOT NULL DEFAULT 'unknown',
    birth_place TEXT,
    birth_city TEXT,
    birth_country TEXT,
    death_place TEXT,
    occupation TEXT,
    bio TEXT,
    is_living INTEGER,
    is_active INTEGER NOT NULL DEFAULT 1,
    allow_matching INTEGER NOT NULL DEFAULT 1,
    min_ancestor_depth INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_profiles_name ON profiles(last_name, first_name);
CREATE INDEX IF NOT EXISTS idx_profiles_active ON profiles(is_active);

-- low_id/high_id hold the unordered pair so one edge per type per pair is enforced
CREATE TABLE IF NOT EXISTS relationships (
    id TEXT PRIMARY KEY,
    person_a TEXT NOT NULL REFERENCES profiles(id),
    person_b TEXT NOT NULL REFERENCES profiles(id),
    type TEXT NOT NULL,
    low_id TEXT NOT NULL,
    high_id TEXT NOT NULL,
    in_law INTEGER NOT NULL DEFAULT 0,
    is_ex INTEGER NOT NULL DEFAULT 0,
    cousin_removed INTEGER,
    halfness TEXT,
    source TEXT NOT NULL DEFAULT 'manual',
    source_ref TEXT,
    created_by TEXT,
    created_at TEXT NOT NULL,
    CHECK (person_a <> person_b)
);
CREATE UNIQUE INDEX IF NOT EXISTS uq_relationships_pair ON relationships(type, low_id, high_id);
CREATE INDEX IF NOT EXISTS idx_relationships_a ON relationships(person_a, type);
CREATE INDEX IF NOT EXISTS idx_relationships_b ON relationships(person_b, type);

CREATE TABLE IF NOT EXISTS ancestor_cache (
    descendant_id TEXT NOT NULL REFERENCES profiles(id),
    ancestor_id TEXT NOT NULL REFERENCES profiles(id),
    depth INTEGER NOT NULL CHECK (depth >= 1),
    path_json TEXT NOT NULL,
    computed_at TEXT NOT NULL,
    PRIMARY KEY (descendant_id, ancestor_id),
    CHECK (descendant_id <> ancestor_id)
);
CREATE INDEX IF NOT EXISTS idx_ancestor_cache_ancestor ON ancestor_cache(ancestor_id, depth);

CREATE TABLE IF NOT EXISTS connection_requests (
    id TEXT PRIMARY KEY,
    from_user TEXT NOT NULL REFERENCES profiles(id),
    to_user TEXT NOT NULL REFERENCES profiles(id),
    low_id TEXT NOT NULL,
    high_id TEXT NOT NULL,
    shared_ancestor_id TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    message TEXT,
    relationship_description TEXT,
    created_at TEXT NOT NULL,
    responded_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_requests_pair ON connection_requests(low_id, high_id, status);
CREATE INDEX IF NOT EXISTS idx_requests_to ON connection_requests(to_user, status);
CREATE INDEX IF NOT EXISTS idx_requests_from ON connection_requests(from_user, status);

CREATE TABLE IF NOT EXISTS potential_duplicates (
    id TEXT PRIMARY KEY,
    profile_a TEXT NOT NULL REFERENCES profiles(id),
    profile_b TEXT NOT NULL REFERENCES profiles(id),
    confidence_score REAL NOT NULL,
    match_reasons_json TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    reviewed_by TEXT,
    reviewed_at TEXT,
    created_at TEXT NOT NULL,
    UNIQUE (profile_a, profile_b),
    CHECK (profile_a < profile_b)
);
CREATE INDEX IF NOT EXISTS idx_duplicates_status ON potential_duplicates(status, confidence_score);

CREATE TABLE IF NOT EXISTS merge_history (
    id TEXT PRIMARY KEY,
    keep_id TEXT NOT NULL,
    merge_id TEXT NOT NULL,
    duplicate_id TEXT,
    actor TEXT NOT NULL,
    snapshot_json TEXT NOT NULL,
    relationships_transferred INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_merge_history_keep ON merge_history(keep_id);
CREATE INDEX IF NOT EXISTS idx_merge_history_merge ON merge_history(merge_id);

CREATE TABLE IF NOT EXISTS content_items (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    author_id TEXT,
    subject_id TEXT,
    body TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_content_author ON content_items(author_id);
CREATE INDEX IF NOT EXISTS idx_content_subject ON content_items(subject_id);

CREATE TABLE IF NOT EXISTS audit_log (
    id TEXT PRIMARY KEY,
    action TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id TEXT,
    payload_json TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_audit_entity ON audit_log(entity_type, entity_id);

CREATE TABLE IF NOT EXISTS notifications (
    id TEXT PRIMARY KEY,
    event_type TEXT NOT NULL,
    actor_id TEXT,
    primary_profile_id TEXT NOT NULL,
    payload_json TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_notifications_profile ON notifications(primary_profile_id);
"""
