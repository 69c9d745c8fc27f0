import logging
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

import yaml
from pydantic import ValidationError

from .executor import Executor
from ..datacls import ExecResult, MockProcess
from ..exceptions import ExecMockError

logger = logging.getLogger(__name__)

MockTable = Mapping[str, Union[MockProcess, Mapping]]


class MockExecutor(Executor):
    """
    Executor that answers commands from a table instead of spawning them

    Each key is a regular expression searched in the full command line
    (arguments joined by single spaces); the first matching entry, in table
    order, governs the result. A command matching no entry is a test
    configuration error.
    """

    def __init__(self, mocks: MockTable):
        self.mocks: Dict[re.Pattern, MockProcess] = {}
        self.calls: List[List[str]] = []
        for pattern, process in mocks.items():
            try:
                compiled = re.compile(pattern)
            except re.error as e:
                raise ExecMockError(f"Invalid mock pattern {pattern!r}: {e}") from e
            self.mocks[compiled] = _to_process(pattern, process)

    def run(
        self,
        command: Sequence[str],
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> ExecResult:
        cmdline = " ".join(command)
        self.calls.append(list(command))
        for pattern, process in self.mocks.items():
            if pattern.search(cmdline):
                logger.debug(f"Mocked '{cmdline}' with pattern '{pattern.pattern}'")
                return ExecResult(
                    command=list(command),
                    stdout=process.stdout,
                    stderr=process.stderr,
                    combined=process.stdout + process.stderr,
                    exit_code=process.exit_code,
                )
        raise ExecMockError(f"No exec mock matches command '{cmdline}'")


def _to_process(pattern: str, process: Union[MockProcess, Mapping, None]) -> MockProcess:
    if isinstance(process, MockProcess):
        return process
    try:
        return MockProcess.model_validate(process or {})
    except ValidationError as e:
        raise ExecMockError(f"Invalid mock for pattern {pattern!r}:\n{e}") from e


def load_mock_table(path: Union[str, Path]) -> Dict[str, MockProcess]:
    """
    Load an exec mock table from a YAML file

    Two layouts are accepted, both ordered:

        node --version:
          stdout: v18.0.0
        npm (ci|install):
          exit_code: 0

    or a list of ``{pattern: ..., stdout: ..., stderr: ..., exit_code: ...}``.
    """
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ExecMockError(f"Exec mock file not found: {path}")
    except yaml.YAMLError as e:
        raise ExecMockError(f"Error parsing exec mock file: {e}")

    if data is None:
        return {}
    table: Dict[str, MockProcess] = {}
    if isinstance(data, dict):
        for pattern, entry in data.items():
            table[str(pattern)] = _to_process(str(pattern), entry)
    elif isinstance(data, list):
        for entry in data:
            if not isinstance(entry, dict) or "pattern" not in entry:
                raise ExecMockError(f"Exec mock list entries need a 'pattern' key, got: {entry!r}")
            entry = dict(entry)
            pattern = str(entry.pop("pattern"))
            table[pattern] = _to_process(pattern, entry)
    else:
        raise ExecMockError("Exec mock file must contain a mapping or a list")
    logger.debug(f"Loaded {len(table)} exec mock(s) from {path}")
    return table


def dump_mock_table(mocks: MockTable, path: Union[str, Path]) -> Path:
    """Write ``mocks`` in the list layout so pattern order survives the round trip."""
    entries = []
    for pattern, process in mocks.items():
        entry = {"pattern": pattern}
        entry.update(_to_process(pattern, process).model_dump())
        entries.append(entry)
    path = Path(path)
    path.write_text(yaml.safe_dump(entries, sort_keys=False), encoding="utf-8")
    return path
