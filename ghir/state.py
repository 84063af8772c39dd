"""Local state file: one IssueRecord per resource name under [issues.<name>]."""

from pathlib import Path

import tomlkit

from ghir.models import IssueRecord

_SECTION = "issues"


def _load(path: Path) -> tomlkit.TOMLDocument:
    if not path.exists():
        return tomlkit.document()
    return tomlkit.parse(path.read_text())


def _write(path: Path, doc: tomlkit.TOMLDocument) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomlkit.dumps(doc))


def load_records(path: Path) -> dict[str, IssueRecord]:
    section = _load(path).get(_SECTION)
    if section is None:
        return {}
    return {name: IssueRecord.model_validate(table.unwrap()) for name, table in section.items()}


def get_record(path: Path, name: str) -> IssueRecord | None:
    return load_records(path).get(name)


def save_record(path: Path, name: str, record: IssueRecord) -> None:
    """Write record under name, keeping everything else in the file (comments included)."""
    doc = _load(path)
    if _SECTION not in doc:
        doc.add(_SECTION, tomlkit.table(is_super_table=True))

    table = tomlkit.table()
    table.update(record.model_dump())
    doc[_SECTION][name] = table
    _write(path, doc)


def remove_record(path: Path, name: str) -> bool:
    """Drop name from the state file. Returns False if it was not tracked."""
    doc = _load(path)
    if _SECTION not in doc or name not in doc[_SECTION]:
        return False
    del doc[_SECTION][name]
    _write(path, doc)
    return True
