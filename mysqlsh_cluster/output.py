"""
Extraction of JSON documents from mysqlsh stdout.
"""

import json
from typing import Any, Dict, Union

from .errors import OutputDecodeError

Output = Union[bytes, str]


def _text(output: Output) -> str:
    if isinstance(output, bytes):
        return output.decode('utf-8', errors='replace')
    return output


def _as_object(document: Any, output: Output) -> Dict[str, Any]:
    if not isinstance(document, dict):
        raise OutputDecodeError("expected a JSON object", output)
    return document


def decode_document(output: Output) -> Dict[str, Any]:
    """Decode the whole of ``output`` as a single JSON object."""
    try:
        document = json.loads(_text(output))
    except json.JSONDecodeError as e:
        raise OutputDecodeError(f"decoding mysqlsh output: {e}", output) from e
    return _as_object(document, output)


def decode_first_json_line(output: Output) -> Dict[str, Any]:
    """
    Decode the first line of ``output`` that starts with '{'.

    Some commands (create_cluster) print progress text on stdout before the
    document; those lines are skipped.
    """
    for line in _text(output).split('\n'):
        if line.startswith('{'):
            break
    else:
        raise OutputDecodeError("no json found in output", output)

    try:
        document = json.loads(line)
    except json.JSONDecodeError as e:
        raise OutputDecodeError(f"decoding mysqlsh output: {e}", output) from e
    return _as_object(document, output)
