from __future__ import annotations

from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]


def _is_excluded(path: Path) -> bool:
    parts = set(path.parts)
    if "tests" in parts:
        return True
    if "__pycache__" in parts:
        return True
    if ".venv" in parts or "venv" in parts:
        return True
    return False


def _runtime_lines():
    for p in REPO_ROOT.rglob("*.py"):
        if _is_excluded(p.relative_to(REPO_ROOT)):
            continue
        text = p.read_text(encoding="utf-8", errors="replace")
        for i, line in enumerate(text.splitlines(), start=1):
            yield p, i, line


def test_no_stubs_or_todos_in_runtime_code() -> None:
    """
    Enforce a repo-wide production quality rule:
    - no TODO/FIXME/XXX placeholders in runtime code
    - no print() debugging; runtime code logs through observability.log_event
    """
    forbidden_substrings = [
        "TODO",
        "FIXME",
        "XXX",
        "print(",
        "not yet implemented",
    ]

    hits: list[str] = []
    for p, i, line in _runtime_lines():
        for s in forbidden_substrings:
            if s in line:
                hits.append(f"{p.relative_to(REPO_ROOT)}:{i}:{line.strip()}")

    assert not hits, "Found stub/TODO markers in runtime code:\n" + "\n".join(hits)


def test_signature_bytes_are_never_logged() -> None:
    hits = [
        f"{p.relative_to(REPO_ROOT)}:{i}"
        for p, i, line in _runtime_lines()
        if "log_event(" in line and ("signature" in line or "_key" in line)
    ]
    assert not hits, "log_event calls must not carry signatures or keys:\n" + "\n".join(hits)
