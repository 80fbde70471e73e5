"""
ABI Formatter - Python

Converts a JSON ABI file into the full human-readable form used to declare
event interfaces in indexing functions, e.g.

    "event Transfer(address indexed from, address indexed to, uint256 indexed tokenId)"

Usage:
    python format_abi.py input-abi.json output-abi.json
"""

from typing import Any, Dict, List, Optional
import json
import logging
import re
import sys

logger = logging.getLogger(__name__)

ARRAY_SUFFIX = re.compile(r"^(.*)(\[\d*\])$")


def format_param(param: Dict[str, Any]) -> str:
    """Render one input/output, keeping names, indexed flags and tuple components."""
    result = _format_type(param["type"], param.get("components"))
    if param.get("indexed"):
        result += " indexed"
    if param.get("name"):
        result += " " + param["name"]
    return result


def _format_type(type_: str, components: Optional[List[Dict[str, Any]]]) -> str:
    match = ARRAY_SUFFIX.match(type_)
    if match:
        return _format_type(match.group(1), components) + match.group(2)
    if type_ == "tuple":
        return "tuple(" + ", ".join(format_param(c) for c in components or []) + ")"
    return type_


def _format_params(params: List[Dict[str, Any]]) -> str:
    return ", ".join(format_param(p) for p in params)


def format_fragment(item: Dict[str, Any]) -> Optional[str]:
    kind = item.get("type", "function")
    inputs = _format_params(item.get("inputs", []))

    if kind == "event":
        result = f"event {item['name']}({inputs})"
        if item.get("anonymous"):
            result += " anonymous"
        return result

    if kind == "error":
        return f"error {item['name']}({inputs})"

    if kind == "constructor":
        result = f"constructor({inputs})"
        if item.get("stateMutability") == "payable" or item.get("payable"):
            result += " payable"
        return result

    if kind == "function":
        result = f"function {item['name']}({inputs})"
        mutability = item.get("stateMutability")
        if mutability is None:
            if item.get("constant"):
                mutability = "view"
            elif item.get("payable"):
                mutability = "payable"
        if mutability and mutability != "nonpayable":
            result += " " + mutability
        if item.get("outputs"):
            result += f" returns ({_format_params(item['outputs'])})"
        return result

    # fallback / receive have no human-readable interface form
    logger.debug("Skipping %s entry", kind)
    return None


def format_abi(abi: List[Dict[str, Any]]) -> List[str]:
    formatted = []
    for item in abi:
        fragment = format_fragment(item)
        if fragment is not None:
            formatted.append(fragment)
    return formatted


def main() -> None:
    if len(sys.argv) != 3:
        print("Usage: python format_abi.py input-abi.json output-abi.json")
        sys.exit(2)

    abi_json_path, full_abi_path = sys.argv[1], sys.argv[2]

    with open(abi_json_path) as fh:
        abi = json.load(fh)

    full_abi = format_abi(abi)

    with open(full_abi_path, "w") as fh:
        json.dump(full_abi, fh, indent=2)

    print(f"✓ Wrote {len(full_abi)} entries to {full_abi_path}")


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

"""
Example Output:

$ python format_abi.py bayc-abi.json bayc-full-abi.json
✓ Wrote 4 entries to bayc-full-abi.json

$ cat bayc-full-abi.json
[
  "event Approval(address indexed owner, address indexed approved, uint256 indexed tokenId)",
  "event ApprovalForAll(address indexed owner, address indexed operator, bool approved)",
  "event OwnershipTransferred(address indexed previousOwner, address indexed newOwner)",
  "event Transfer(address indexed from, address indexed to, uint256 indexed tokenId)"
]
"""
