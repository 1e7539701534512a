"""001: create parties, bets, bet_options, wagers, settlements

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_TABLES = ("parties", "bets")


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE parties (
            id              SERIAL          PRIMARY KEY,
            name            VARCHAR(100)    NOT NULL,
            date            TIMESTAMPTZ     NOT NULL,
            description     VARCHAR(500),
            status          VARCHAR(20)     NOT NULL DEFAULT 'active',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_parties_status CHECK (status IN ('active', 'archived'))
        );
    """)
    op.execute("""
        CREATE TABLE bets (
            id                  SERIAL          PRIMARY KEY,
            party_id            INT             NOT NULL REFERENCES parties (id),
            bet_type            VARCHAR(20)     NOT NULL,
            question            VARCHAR(500)    NOT NULL,
            created_by          VARCHAR(50)     NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'open',
            winning_option_id   INT,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_bets_type CHECK (bet_type IN ('yes_no', 'multi_option')),
            CONSTRAINT ck_bets_status CHECK (status IN ('open', 'closed', 'settled')),
            CONSTRAINT ck_bets_winner_only_when_settled CHECK (
                (status = 'settled') = (winning_option_id IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_bets_party_status ON bets (party_id, status);")
    op.execute("""
        CREATE TABLE bet_options (
            id          SERIAL          PRIMARY KEY,
            bet_id      INT             NOT NULL REFERENCES bets (id),
            label       VARCHAR(100)    NOT NULL,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_bet_options_bet ON bet_options (bet_id);")
    op.execute("""
        ALTER TABLE bets ADD CONSTRAINT fk_bets_winning_option
            FOREIGN KEY (winning_option_id) REFERENCES bet_options (id);
    """)
    op.execute("""
        CREATE TABLE wagers (
            id          BIGSERIAL       PRIMARY KEY,
            bet_id      INT             NOT NULL REFERENCES bets (id),
            option_id   INT             NOT NULL REFERENCES bet_options (id),
            user_name   VARCHAR(50)     NOT NULL,
            amount      INT             NOT NULL,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_wagers_amount_gt_0 CHECK (amount > 0)
        );
    """)
    op.execute("CREATE INDEX idx_wagers_bet ON wagers (bet_id);")
    op.execute("""
        CREATE TABLE settlements (
            id                      BIGSERIAL       PRIMARY KEY,
            bet_id                  INT             NOT NULL REFERENCES bets (id),
            user_name               VARCHAR(50)     NOT NULL,
            total_wagered_cents     BIGINT          NOT NULL,
            payout_cents            BIGINT          NOT NULL,
            net_win_loss_cents      BIGINT          NOT NULL,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_settlements_bet_user UNIQUE (bet_id, user_name),
            CONSTRAINT ck_settlements_payout_gte_0 CHECK (payout_cents >= 0),
            CONSTRAINT ck_settlements_net CHECK (
                net_win_loss_cents = payout_cents - total_wagered_cents
            )
        );
    """)
    for table in _TABLES:
        op.execute(f"""
            CREATE TRIGGER trg_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
        """)
    op.execute("COMMENT ON TABLE settlements IS 'Per-user payout audit trail, written once at settle time';")


def downgrade() -> None:
    for table in ("settlements", "wagers"):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")
    op.execute("ALTER TABLE bets DROP CONSTRAINT IF EXISTS fk_bets_winning_option;")
    for table in ("bet_options", "bets", "parties"):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
