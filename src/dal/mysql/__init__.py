"""MySQL-backed DAL components."""

from .catalog import MysqlCatalogIntrospector
from .param_translation import translate_qmark_params
from .query_target import MysqlQueryTarget
from .quoting import qualified_table, quote_mysql_name

__all__ = [
    "MysqlCatalogIntrospector",
    "MysqlQueryTarget",
    "qualified_table",
    "quote_mysql_name",
    "translate_qmark_params",
]
