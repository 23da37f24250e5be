"""Shared test fixtures: a small annotated source file for a fictional helpdesk app."""

from __future__ import annotations

import pytest

from indexscout import AdvisorReport, IndexAdvisor
from indexscout.models import ExtractedQuery
from indexscout.parsers.clause_parser import ClauseParser

SAMPLE_SOURCE = '''\
use crate::db::{Connection, Result};

#[derive(Debug, Clone, FromRow)]
pub struct Ticket {
    pub id: i64,
    pub tenant_id: i64,
    pub status: String,
    pub priority: i32,
    #[sqlx(rename = "created")]
    pub created_at: DateTime<Utc>,
    pub title: String,
}

pub struct User {
    pub id: i64,
    pub email: String,
    pub name: String,
}

pub struct Order { pub id: i64, pub user_id: i64, pub total: f64, pub status: String }

pub fn open_tickets(conn: &Connection) -> Result<Vec<Ticket>> {
    Ticket::where_query!("tenant_id = $1 AND status IN ($2, $3) AND priority > $4 ORDER BY created_at DESC")
}

pub fn user_by_email(conn: &Connection) -> Result<User> {
    User::where_query!("email = $1")
}

pub fn first_user_by_email(conn: &Connection) -> Result<User> {
    User::where_query!("email = $1 LIMIT 1")
}

pub fn paid_orders(conn: &Connection) -> Result<Vec<Order>> {
    Order::make_query(
        "SELECT * FROM orders JOIN users ON orders.user_id = users.id WHERE orders.status = 'paid'",
    )
}

pub fn order_counts(conn: &Connection) -> Result<Vec<(String, i64)>> {
    Order::count_query("SELECT status, COUNT(*) FROM orders GROUP BY status")
}
'''

TICKET_FIELDS = ("id", "tenant_id", "status", "priority", "created_at", "title")
USER_FIELDS = ("id", "email", "name")
ORDER_FIELDS = ("id", "user_id", "total", "status")


def make_query(sql: str, table: str = "Ticket", fields: tuple[str, ...] = TICKET_FIELDS):
    """Build an ExtractedQuery the way the extractor would."""
    return ExtractedQuery(table_name=table, table_fields=fields, sql_text=sql)


@pytest.fixture
def sample_source() -> str:
    """Annotated source text with three structs and five queries."""
    return SAMPLE_SOURCE


@pytest.fixture
def catalog() -> dict[str, tuple[str, ...]]:
    """Field lists of every struct in the sample source."""
    return {"Ticket": TICKET_FIELDS, "User": USER_FIELDS, "Order": ORDER_FIELDS}


@pytest.fixture
def parser(catalog: dict[str, tuple[str, ...]]) -> ClauseParser:
    """Clause parser that knows the sample tables."""
    return ClauseParser(catalog)


@pytest.fixture
def advisor() -> IndexAdvisor:
    """PostgreSQL advisor with default settings."""
    return IndexAdvisor()


@pytest.fixture
def sample_report(advisor: IndexAdvisor, sample_source: str) -> AdvisorReport:
    """Full analysis of the sample source."""
    return advisor.analyze_text(sample_source, "src/models.rs")


@pytest.fixture
def source_tree(tmp_path, sample_source: str):
    """Directory with the sample split across files, plus noise to skip."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "models.rs").write_text(sample_source, encoding="utf-8")
    (src / "README.md").write_text('Ticket::where_query!("title = $1")', encoding="utf-8")
    target = tmp_path / "target"
    target.mkdir()
    (target / "generated.rs").write_text(
        'Ticket::where_query!("title = $1")', encoding="utf-8"
    )
    return tmp_path
