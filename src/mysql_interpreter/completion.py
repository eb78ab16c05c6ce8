from typing import FrozenSet, Iterable, Set

SQL_KEYWORDS: FrozenSet[str] = frozenset({
    "ADD", "ALL", "ALTER", "ANALYZE", "AND", "AS", "ASC", "BETWEEN", "BIGINT",
    "BINARY", "BLOB", "BOTH", "BY", "CASCADE", "CASE", "CHANGE", "CHAR",
    "CHARACTER", "CHECK", "COLLATE", "COLUMN", "CONSTRAINT", "CREATE", "CROSS",
    "CURRENT_DATE", "CURRENT_TIME", "CURRENT_TIMESTAMP", "DATABASE",
    "DATABASES", "DECIMAL", "DEFAULT", "DELETE", "DESC", "DESCRIBE", "DISTINCT",
    "DOUBLE", "DROP", "ELSE", "END", "ENUM", "EXISTS", "EXPLAIN", "FALSE",
    "FLOAT", "FOR", "FOREIGN", "FROM", "FULLTEXT", "GRANT", "GROUP", "HAVING",
    "IF", "IGNORE", "IN", "INDEX", "INNER", "INSERT", "INT", "INTEGER",
    "INTERVAL", "INTO", "IS", "JOIN", "KEY", "KEYS", "KILL", "LEFT", "LIKE",
    "LIMIT", "LOAD", "LOCK", "LONGTEXT", "MATCH", "NATURAL", "NOT", "NULL",
    "OFFSET", "ON", "OPTIMIZE", "OR", "ORDER", "OUTER", "PRIMARY", "PROCEDURE",
    "REFERENCES", "REGEXP", "RENAME", "REPLACE", "RESTRICT", "REVOKE", "RIGHT",
    "SCHEMA", "SELECT", "SET", "SHOW", "SMALLINT", "TABLE", "TABLES", "TEXT",
    "THEN", "TINYINT", "TO", "TRUE", "TRUNCATE", "UNION", "UNIQUE", "UNLOCK",
    "UNSIGNED", "UPDATE", "USE", "USING", "VALUES", "VARCHAR", "VIEW", "WHEN",
    "WHERE", "WITH",
})


class SqlCompleter:
    """Prefix completion of the word under the cursor against a keyword list."""

    def __init__(self, keywords: Iterable[str] = SQL_KEYWORDS):
        self.keywords = sorted({k.strip().upper() for k in keywords if k.strip()})

    def complete(self, buf: str, cursor: int) -> Set[str]:
        buf = buf or ""
        if cursor < 0 or cursor > len(buf):
            return set()

        word = word_at(buf, cursor).upper()
        if not word:
            return set()
        return {f"{keyword} " for keyword in self.keywords if keyword.startswith(word)}


def word_at(buf: str, cursor: int) -> str:
    """Returns the whitespace-delimited token that spans ``cursor``."""
    start = cursor
    while start > 0 and not buf[start - 1].isspace():
        start -= 1
    end = cursor
    while end < len(buf) and not buf[end].isspace():
        end += 1
    return buf[start:end]
