"""Supabase (Postgres) schema for the game tables."""

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS market_state (
        id TEXT PRIMARY KEY,
        document JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS accounts (
        uid TEXT PRIMARY KEY,
        display_name TEXT NOT NULL DEFAULT 'User',
        cash NUMERIC NOT NULL CHECK (cash >= 0),
        portfolio JSONB NOT NULL DEFAULT '[]'::jsonb,
        total_asset NUMERIC NOT NULL DEFAULT 0,
        principal NUMERIC NOT NULL DEFAULT 0,
        last_reward_at TIMESTAMPTZ,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        version INTEGER NOT NULL DEFAULT 0
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS leaderboard (
        uid TEXT PRIMARY KEY REFERENCES accounts(uid) ON DELETE CASCADE,
        display_name TEXT NOT NULL,
        total_asset NUMERIC NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS pending_orders (
        id TEXT PRIMARY KEY,
        uid TEXT NOT NULL REFERENCES accounts(uid) ON DELETE CASCADE,
        stock_id TEXT NOT NULL,
        type TEXT NOT NULL CHECK (type IN ('buy', 'sell')),
        price NUMERIC NOT NULL CHECK (price > 0),
        amount INTEGER NOT NULL CHECK (amount > 0),
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS pending_orders_uid_idx ON pending_orders (uid);
    """,
    # Compare-and-swap on accounts.version; account and leaderboard rows are
    # written in the function's single transaction.
    """
    CREATE OR REPLACE FUNCTION commit_account(
        p_account JSONB,
        p_leaderboard JSONB,
        p_expected_version INTEGER
    ) RETURNS BOOLEAN
    LANGUAGE plpgsql
    AS $$
    DECLARE
        updated_rows INTEGER;
    BEGIN
        UPDATE accounts SET
            display_name = p_account->>'display_name',
            cash = (p_account->>'cash')::NUMERIC,
            portfolio = p_account->'portfolio',
            total_asset = (p_account->>'total_asset')::NUMERIC,
            principal = (p_account->>'principal')::NUMERIC,
            last_reward_at = (p_account->>'last_reward_at')::TIMESTAMPTZ,
            updated_at = (p_account->>'updated_at')::TIMESTAMPTZ,
            version = p_expected_version + 1
        WHERE uid = p_account->>'uid' AND version = p_expected_version;

        GET DIAGNOSTICS updated_rows = ROW_COUNT;
        IF updated_rows = 0 THEN
            RETURN FALSE;
        END IF;

        INSERT INTO leaderboard (uid, display_name, total_asset, updated_at)
        VALUES (
            p_leaderboard->>'uid',
            p_leaderboard->>'display_name',
            (p_leaderboard->>'total_asset')::NUMERIC,
            (p_leaderboard->>'updated_at')::TIMESTAMPTZ
        )
        ON CONFLICT (uid) DO UPDATE SET
            display_name = EXCLUDED.display_name,
            total_asset = EXCLUDED.total_asset,
            updated_at = EXCLUDED.updated_at;

        RETURN TRUE;
    END;
    $$;
    """,
]


def schema_sql() -> str:
    """All statements joined, ready to paste into the Supabase SQL editor."""
    return "\n".join(stmt.strip() for stmt in SCHEMA_STATEMENTS) + "\n"
