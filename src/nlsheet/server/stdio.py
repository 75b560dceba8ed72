"""stdio server mode: JSON line-delimited protocol over stdin/stdout."""

from __future__ import annotations

import sys
from typing import Any, TextIO

import orjson

from nlsheet.contracts.common import InstructionError, WorkbookCorruptError
from nlsheet.engine.session import Session

COMMANDS = ("load", "run", "eval", "grid", "history", "save", "close")


class StdioServer:
    """Serves one :class:`Session` to a host over newline-delimited JSON.

    Requests look like ``{"id": "1", "command": "run", "args": {...}}``;
    every request gets exactly one response line.
    """

    def __init__(self, session: Session | None = None) -> None:
        self.session = session or Session()

    def handle_request(self, request: dict[str, Any]) -> dict[str, Any]:
        req_id = request.get("id", "")
        command = request.get("command", "")
        args = request.get("args") or {}
        if not isinstance(args, dict):
            return _error(req_id, "ERR_USAGE", "'args' must be a JSON object")

        try:
            if command == "load":
                if args.get("sample"):
                    meta = self.session.load_sample()
                elif args.get("file"):
                    meta = self.session.load_workbook(args["file"], args.get("sheet"))
                elif "rows" in args:
                    meta = self.session.load_grid(args["rows"], args.get("sheet"))
                else:
                    return _error(req_id, "ERR_MISSING_PARAM", "Provide 'file', 'rows' or 'sample' in args")
                return {"id": req_id, "ok": True, "result": meta.model_dump()}

            elif command == "run":
                instruction = args.get("instruction", "")
                if not isinstance(instruction, str):
                    return _error(req_id, "ERR_USAGE", "'instruction' must be a string")
                result = self.session.run(instruction)
                return {"id": req_id, "ok": True, "result": result.model_dump()}

            elif command == "eval":
                result = self.session.evaluate(
                    args.get("expression", ""),
                    int(args.get("row", 2)) - 1,
                    args.get("col", "A"),
                )
                return {"id": req_id, "ok": True, "result": result.model_dump()}

            elif command == "grid":
                return {"id": req_id, "ok": True, "result": {
                    "grid": self.session.grid,
                    "meta": self.session.meta().model_dump(),
                }}

            elif command == "history":
                return {"id": req_id, "ok": True, "result": list(self.session.history)}

            elif command == "save":
                file = args.get("file", "")
                if not file:
                    return _error(req_id, "ERR_MISSING_PARAM", "Missing 'file' in args")
                return {"id": req_id, "ok": True, "result": {"path": self.session.export(file)}}

            elif command == "close":
                return {"id": req_id, "ok": True, "result": "closed"}

            else:
                return _error(
                    req_id, "ERR_USAGE",
                    f"Unknown command: {command}. Supported: {', '.join(COMMANDS)}",
                )

        except InstructionError as e:
            return _error(req_id, e.code, e.message)
        except FileNotFoundError as e:
            return _error(req_id, "ERR_WORKBOOK_NOT_FOUND", str(e))
        except WorkbookCorruptError as e:
            return _error(req_id, "ERR_WORKBOOK_CORRUPT", str(e))
        except KeyError as e:
            return _error(req_id, "ERR_SHEET_NOT_FOUND", str(e.args[0]) if e.args else str(e))
        except (TypeError, ValueError) as e:
            return _error(req_id, "ERR_USAGE", str(e))
        except Exception as e:
            return _error(req_id, "ERR_INTERNAL", str(e))

    def run(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        """Main server loop: read JSON lines, write one response line each."""
        stdin = stdin or sys.stdin
        stdout = stdout or sys.stdout
        for line in stdin:
            line = line.strip()
            if not line:
                continue
            try:
                request = orjson.loads(line)
            except orjson.JSONDecodeError as e:
                response = {"ok": False, "code": "ERR_USAGE", "error": f"Invalid JSON: {e}"}
            else:
                if isinstance(request, dict):
                    response = self.handle_request(request)
                else:
                    response = {"ok": False, "code": "ERR_USAGE", "error": "Request must be a JSON object"}
            stdout.write(_encode(response) + "\n")
            stdout.flush()
            if response.get("ok") and response.get("result") == "closed":
                break


def _error(req_id: Any, code: str, message: str) -> dict[str, Any]:
    return {"id": req_id, "ok": False, "code": code, "error": message}


def _encode(response: dict[str, Any]) -> str:
    try:
        return orjson.dumps(response, default=str).decode()
    except TypeError as e:
        fallback = _error(response.get("id", ""), "ERR_INTERNAL", f"Cannot encode response: {e}")
        return orjson.dumps(fallback, default=str).decode()
