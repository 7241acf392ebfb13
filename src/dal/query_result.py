from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dal.normalization import column_names


@dataclass
class QueryResult:
    """Container for normalized rows or a mutation's affected-row count."""

    rows: List[Dict[str, Any]] = field(default_factory=list)
    affected: Optional[int] = None
    message: str = ""
    limit_applied: Optional[int] = None

    @property
    def is_mutation(self) -> bool:
        return self.affected is not None

    @property
    def columns(self) -> List[str]:
        return column_names(self.rows)
