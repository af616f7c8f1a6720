"""String encoding of data paths.

A path is encoded as dot-separated parts of the form
``field@index#jsonId``, for example ``Query.dashboard.items@2#"7"``.
"""

import json
import re

from partialql.core.entities.entity import DataPath, PathPart
from partialql.core.errors import DataPathError

_FIELD = re.compile(r"[_A-Za-z][_0-9A-Za-z]*")
_INDEX = re.compile(r"@(\d+)")
_decoder = json.JSONDecoder()


def part_to_str(part: PathPart) -> str:
    text = part.field
    if part.index is not None:
        text += f"@{part.index}"
        if part.id is not None:
            text += f"#{json.dumps(part.id)}"
    return text


def data_path_to_str(path: DataPath) -> str:
    """Encode a data path.

    Raises:
        DataPathError: If the path is empty.
    """
    if not path:
        raise DataPathError("Cannot encode an empty data path")
    return ".".join(part_to_str(part) for part in path)


def str_to_data_path(text: str) -> DataPath:
    """Decode a data path produced by :func:`data_path_to_str`.

    Ids are read as JSON values, so they may contain dots.

    Raises:
        DataPathError: If the string is empty or malformed.
    """
    if not text:
        raise DataPathError("Cannot decode an empty data path")

    parts: list[PathPart] = []
    pos = 0
    while True:
        match = _FIELD.match(text, pos)
        if match is None:
            raise DataPathError(f"Expected field name at {pos} in {text!r}")
        part = PathPart(field=match.group())
        pos = match.end()

        match = _INDEX.match(text, pos)
        if match is not None:
            part = part.with_index(int(match.group(1)))
            pos = match.end()
            if text.startswith("#", pos):
                try:
                    id, pos = _decoder.raw_decode(text, pos + 1)
                except json.JSONDecodeError as e:
                    raise DataPathError(f"Invalid id in {text!r}: {e}") from e
                part = part.with_id(id)

        parts.append(part)
        if pos == len(text):
            return tuple(parts)
        if text[pos] != ".":
            raise DataPathError(f"Unexpected {text[pos]!r} at {pos} in {text!r}")
        pos += 1
