import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union


@dataclass(frozen=True)
class QueryRequest:
    query: str
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class SuccessResponse:
    last_updated: str
    column_names: List[str]
    rows: List[List[str]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lastUpdated': self.last_updated,
            'columnNames': self.column_names,
            'rows': self.rows
        }


@dataclass
class ErrorResponse:
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {'error': self.message}


QueryResponse = Union[SuccessResponse, ErrorResponse]


def response_from_dict(data: Dict[str, Any]) -> QueryResponse:
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    if 'error' in data:
        if not isinstance(data['error'], str):
            raise ValueError("'error' must be a string")
        return ErrorResponse(message=data['error'])
    try:
        last_updated = data['lastUpdated']
        column_names = data['columnNames']
        rows = data['rows']
    except KeyError as e:
        raise ValueError(f"Missing field in success response: {e.args[0]}") from e
    if not isinstance(last_updated, str):
        raise ValueError("'lastUpdated' must be a string")
    if not isinstance(column_names, list) or not all(isinstance(c, str) for c in column_names):
        raise ValueError("'columnNames' must be a list of strings")
    if not isinstance(rows, list) or not all(
        isinstance(row, list) and all(isinstance(v, str) for v in row) for row in rows
    ):
        raise ValueError("'rows' must be a list of lists of strings")
    return SuccessResponse(last_updated=last_updated, column_names=column_names, rows=rows)
