"""Core output dispatchers."""

import json

from taskboard import config


def pretty_print(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))


def output(data, formatter=None, fmt="json"):
    """Output data in requested format."""
    if fmt == "table" and formatter:
        print(formatter(data))
    else:
        print(json.dumps(data, indent=2, ensure_ascii=False))


def mutation_response(action, result, fmt="json"):
    """Print a mutation confirmation.

    Quiet mode prints only the JSON result on one line so scripts can pipe it.
    """
    if config.RUNTIME_QUIET:
        print(json.dumps(result, ensure_ascii=False))
        return
    line = f"OK: {action}"
    if result.get("cardId"):
        line += f" card {result['cardId']}"
        if "position" in result:
            line += f" in {result['columnId']} at position {result['position']}"
    elif result.get("columnId"):
        line += f" {result['columnId']}"
    print(line)
    for warning in result.get("warnings", []):
        print(f"[WARN] {warning}")
    if fmt == "json":
        print(json.dumps(result, indent=2, ensure_ascii=False))
