from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence

import orjson

from adapters.elk.models import ElkNode

logger = logging.getLogger(__name__)

ELK_RUNNER_SCRIPT = """
const ELK = require("elkjs");
let input = "";
process.stdin.on("data", (chunk) => { input += chunk; });
process.stdin.on("end", () => {
  new ELK()
    .layout(JSON.parse(input))
    .then((result) => process.stdout.write(JSON.stringify(result)))
    .catch((err) => { console.error(err.message); process.exit(1); });
});
"""

DEFAULT_COMMAND: tuple[str, ...] = ("node", "-e", ELK_RUNNER_SCRIPT)


class LayoutBackendError(RuntimeError):
    pass


class ElkSubprocessBackend:
    """Runs elkjs in a ``node`` child process, ELK JSON on stdin and stdout."""

    def __init__(self, command: Sequence[str] | None = None, timeout: float = 30.0) -> None:
        self.command = tuple(command) if command else DEFAULT_COMMAND
        self.timeout = timeout

    def layout(self, graph: ElkNode) -> ElkNode:
        payload = orjson.dumps(graph.to_payload())
        try:
            completed = subprocess.run(
                list(self.command),
                input=payload,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except OSError as exc:
            msg = f"Failed to spawn ELK layout process: {exc}"
            raise LayoutBackendError(msg) from exc
        except subprocess.TimeoutExpired as exc:
            msg = f"ELK layout timed out after {self.timeout} seconds"
            raise LayoutBackendError(msg) from exc

        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="replace").strip()
            msg = f"ELK layout failed: {stderr}"
            raise LayoutBackendError(msg)

        try:
            return ElkNode.model_validate(orjson.loads(completed.stdout))
        except (orjson.JSONDecodeError, ValueError) as exc:
            logger.exception("Unparseable ELK layout output for graph %s", graph.id)
            msg = f"Failed to parse ELK output: {exc}"
            raise LayoutBackendError(msg) from exc
