def quote_mysql_name(name: str) -> str:
    """Backtick-quote a MySQL identifier, doubling embedded backticks."""
    return "`" + str(name).replace("`", "``") + "`"


def qualified_table(database: str, table: str) -> str:
    """Return the backtick-quoted, database-qualified table reference."""
    return f"{quote_mysql_name(database)}.{quote_mysql_name(table)}"
