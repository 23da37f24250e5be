"""
IndexScout -- Demo Analysis Script

This script demonstrates how to use IndexScout as a Python library. It covers
the full API surface: analyzing inline source text, a single query, or a
source tree; reading recommendations, notes and the join graph; and exporting
reports in every supported format.

Nothing here touches a database. Point ``SOURCE_DIR`` at your own project
to analyze real code.
"""

from indexscout import AnalysisConfig, IndexAdvisor

SOURCE_DIR = "src/"

# ---------------------------------------------------------------------------
# 1. Analyze a block of annotated source text
# ---------------------------------------------------------------------------
# Structs declare the field list; Subject::method("SQL") calls carry queries.

SOURCE = '''
pub struct Ticket {
    pub id: i64,
    pub tenant_id: i64,
    pub status: String,
    pub priority: i32,
    pub created_at: DateTime<Utc>,
}

pub struct Order { pub id: i64, pub user_id: i64, pub status: String }

Ticket::where_query!("tenant_id = $1 AND status IN ($2, $3) AND priority > $4 ORDER BY created_at DESC");
Order::make_query("SELECT * FROM orders JOIN users ON orders.user_id = users.id WHERE orders.status = 'paid'");
'''

advisor = IndexAdvisor(dialect="postgres")
report = advisor.analyze_text(SOURCE, "demo.rs")

print(f"Queries found: {len(report.queries)}")
for rec in report.recommendations:
    print(f"  {rec.table}: {', '.join(rec.key_columns)}")
    print(f"    {rec.create_sql}")
    print(f"    reason: {rec.reason}")

# ---------------------------------------------------------------------------
# 2. Same input, different dialects
# ---------------------------------------------------------------------------
# Key columns never change; only the syntax each database accepts does.

for dialect in ("postgres", "mysql", "sqlite"):
    result = IndexAdvisor(dialect).analyze_text(SOURCE, "demo.rs")
    print(f"\n[{dialect}]")
    for rec in result.recommendations:
        print(f"  {rec.create_sql}")
    for note in result.notes:
        print(f"  note: {note}")

# ---------------------------------------------------------------------------
# 3. Analyze one query against a known field list
# ---------------------------------------------------------------------------

single = IndexAdvisor("sqlite").analyze_sql(
    "SELECT id, name FROM users WHERE email = $1",
    table="User",
    fields=["id", "email", "name"],
)
print(f"\nSingle query: {single.recommendations[0].create_sql}")

# ---------------------------------------------------------------------------
# 4. Analyze a source tree with custom settings
# ---------------------------------------------------------------------------

config = AnalysisConfig(
    dialect="mysql",
    mysql_version=5,
    extensions=[".rs"],
    query_methods=["where_query", "make_query", "fetch_all"],
    if_not_exists=True,
    snake_case_tables=True,
)
tree_advisor = IndexAdvisor(config=config)

try:
    tree_report = tree_advisor.analyze_path(SOURCE_DIR)
except FileNotFoundError as exc:
    print(f"\nSkipping source tree: {exc}")
else:
    print(f"\nScanned {tree_report.files_scanned} files")
    for table, recs in tree_report.by_table().items():
        print(f"  {table}: {len(recs)} indexes")
    for dup in tree_report.duplicates:
        print(f"  folded {dup['source']} into {dup['duplicate_of']}")
    for hotspot in tree_report.join_graph.get("hotspots", []):
        print(f"  hotspot {hotspot['table']}: degree {hotspot['degree']}")

    # -----------------------------------------------------------------------
    # 5. Export reports
    # -----------------------------------------------------------------------
    tree_advisor.export_json(SOURCE_DIR, "indexscout-report.json")
    tree_advisor.export_html(SOURCE_DIR, "indexscout-report.html")
    tree_advisor.export_sql(SOURCE_DIR, "add-indexes.sql", rollback_path="drop-indexes.sql")
    print("Reports written.")
