"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console backed by StringIO; renderers are
dispatched by ``result.op`` in :func:`render_result`. Unknown ops fall
through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from acctgraph.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from acctgraph.services.result import ServiceResult

type _Renderer = Callable[..., None]


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
        if verbose:
            _render_meta(console, result)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: ids, one per line."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    d = result.data
    if isinstance(d.get("relationship"), dict):
        return str(d["relationship"]["id"])
    if isinstance(d.get("items"), list):
        return "\n".join(str(item["id"]) for item in d["items"])
    if "parent_relationships" in d:
        edges = [*d["parent_relationships"], *d["child_relationships"]]
        return "\n".join(str(e["id"]) for e in edges)
    if "would_create_circular" in d:
        return "true" if d["would_create_circular"] else "false"
    if "id" in d:
        return str(d["id"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="acg.ok"), Text(f"  {result.op}", style="acg.op"))


def _field(console: Console, key: str, value: Any) -> None:
    style = "acg.id" if key == "id" or key.endswith("_id") else ""
    console.print(Text(f"  {key}: ", style="acg.key"), Text(str(value), style=style))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print the meta block, including the telemetry span tree."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            _render_span(console, value, indent=4)
        else:
            console.print(Text(f"    {key}: {value}"))


def _render_span(console: Console, span: dict[str, Any], indent: int) -> None:
    duration = span.get("duration_ms", 0.0)
    style = "bold red" if duration > 1000 else "yellow" if duration > 100 else "dim"
    line = Text(" " * indent)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {span.get('name', '?')}")
    annotations = span.get("annotations") or {}
    if annotations:
        line.append("  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")")
    console.print(line)
    for child in span.get("children", []):
        _render_span(console, child, indent + 4)


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = f" [{err.code}]" if err else ""
    console.print(
        Text("ERROR", style="acg.error"),
        Text(f"  {result.op}{code}", style="acg.op"),
        Text(f": {msg}"),
    )
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for key, value in err.detail.items():
            console.print(Text(f"    {key}: {value}"))


# ── Account renderers ─────────────────────────────────────────────────


def _account_table(items: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("ID", style="acg.id", no_wrap=True)
    table.add_column("Name", style="acg.name")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Industry")
    if verbose:
        table.add_column("Created", style="dim")
    for item in items:
        row = [
            Text(item["id"]),
            Text(item["name"]),
            Text(item["type"]),
            Text(item["status"], style=style_for_status(item["status"])),
            Text(item.get("industry") or ""),
        ]
        if verbose:
            row.append(Text(item["created_at"]))
        table.add_row(*row)
    return table


def _render_account(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    keys = ["id", "name", "type", "status", "industry", "parent_count", "child_count"]
    if verbose:
        keys += ["created_by", "created_at", "updated_by", "updated_at"]
    for key in keys:
        if result.data.get(key) is not None:
            _field(console, key, result.data[key])


def _render_account_page(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    d = result.data
    if d.get("direction"):
        console.print(Text(f"{d['direction'].title()} of {d['account_id']}", style="bold"))
    items = d.get("items", [])
    if items:
        console.print(_account_table(items, verbose=verbose))
    else:
        console.print("No accounts.")
    console.print(
        f"\nPage {d['page']} of {max(d['total_pages'], 1)} ({d['total']} total)", highlight=False
    )


def _render_delete(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "id", result.data["id"])
    _field(console, "relationships_removed", result.data["relationships_removed"])


# ── Relationship renderers ────────────────────────────────────────────


def _edge_table(title: str, edges: list[dict[str, Any]], other_key: str, *, verbose: bool) -> Table:
    table = Table(title=title, title_justify="left", show_header=True, expand=False)
    table.add_column("Edge", style="acg.id", no_wrap=True)
    table.add_column("Account", style="acg.id", no_wrap=True)
    table.add_column("Type")
    if verbose:
        table.add_column("Created by", style="dim")
        table.add_column("Created", style="dim")
    for edge in edges:
        row = [Text(edge["id"]), Text(edge[other_key]), Text(edge["relationship_type"])]
        if verbose:
            row += [Text(edge["created_by"]), Text(edge["created_at"])]
        table.add_row(*row)
    return table


def _render_snapshot(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a relationship snapshot plus whatever the mutation changed."""
    d = result.data
    _status_line(console, result)
    _field(console, "account_id", d["account_id"])

    if d.get("relationship"):
        edge = d["relationship"]
        _field(console, "added", f"{edge['parent_id']} -> {edge['child_id']} ({edge['id']})")
    removed = d.get("removed")
    if isinstance(removed, dict):
        removed = [removed]
    for edge in removed or []:
        _field(console, "removed", f"{edge['parent_id']} -> {edge['child_id']} ({edge['id']})")
    for edge in d.get("added") or []:
        _field(console, "added", f"{edge['parent_id']} -> {edge['child_id']} ({edge['id']})")

    parents = d.get("parent_relationships", [])
    children = d.get("child_relationships", [])
    if not parents and not children:
        console.print("\nNo relationships.")
        return
    if parents:
        console.print()
        console.print(_edge_table("Parents", parents, "parent_id", verbose=verbose))
    if children:
        console.print()
        console.print(_edge_table("Children", children, "child_id", verbose=verbose))


def _node_label(node: dict[str, Any], arrow: str = "") -> Text:
    label = Text(arrow)
    if node.get("error"):
        label.append(node["id"], style="acg.id")
        label.append(f"  {node['error']}", style="acg.error")
        return label
    label.append(node.get("name") or "?", style="acg.name")
    label.append(f" {node['id']}", style="acg.id")
    if node.get("relationship_type"):
        label.append(f"  {node['relationship_type']}", style="dim")
    if node.get("is_cycle"):
        label.append("  (cycle)", style="acg.cycle")
    return label


def _grow(branch: Tree, node: dict[str, Any]) -> None:
    for parent in node.get("parents", []):
        _grow(branch.add(_node_label(parent, "↑ ")), parent)
    for child in node.get("children", []):
        _grow(branch.add(_node_label(child, "↓ ")), child)


def _render_hierarchy(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    root = result.data["root"]
    tree = Tree(_node_label(root))
    _grow(tree, root)
    console.print(tree)
    console.print(f"\ndepth: {result.data['depth']}", highlight=False)


def _render_circular(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    if d["would_create_circular"]:
        console.print(
            Text("CYCLE", style="acg.error"),
            f"  {d['parent_id']} -> {d['child_id']} would close a loop:",
        )
        console.print("  " + " -> ".join(d["path"]), style="acg.cycle")
    else:
        console.print(
            Text("OK", style="acg.ok"), f"  {d['parent_id']} -> {d['child_id']} is acyclic"
        )


# ── Check / upgrade renderers ─────────────────────────────────────────


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render check results with issues grouped by category."""
    issues = result.data.get("issues", [])
    if not issues:
        console.print(Text("OK", style="acg.ok"), "  No issues found.")
        return

    by_category: dict[str, list[dict[str, Any]]] = {}
    for issue in issues:
        by_category.setdefault(issue["category"], []).append(issue)

    severity_styles = {"error": "acg.error", "warning": "acg.warning"}
    for category, group in by_category.items():
        console.print(f"\n{category}", style="bold")
        for issue in group:
            sev = issue["severity"]
            line = Text("  ")
            line.append(sev, style=severity_styles.get(sev, ""))
            if issue.get("node_id"):
                line.append(f" [{issue['node_id']}]")
            line.append(f": {issue['message']}")
            console.print(line)
            if verbose and issue.get("fix_action"):
                console.print(f"    fix: {issue['fix_action']}")

    console.print(
        f"\n{result.data['error_count']} errors, {result.data['warning_count']} warnings"
    )


def _render_upgrade(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    for key in ("applied_count", "pending_count", "stamped", "current", "head", "backup_path"):
        if key in d:
            _field(console, key, d[key])
    if "message" in d:
        _field(console, "message", d["message"])
    if verbose and d.get("pending"):
        console.print()
        for p in d["pending"]:
            console.print(f"  {p['revision']}: {p['description']}")


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, separators=(",", ":"))
        _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, _Renderer] = {
    # Accounts
    "create_account": _render_account,
    "get_account": _render_account,
    "list_accounts": _render_account_page,
    "delete_account": _render_delete,
    # Relationships
    "add_relationship": _render_snapshot,
    "remove_relationship": _render_snapshot,
    "update_relationships": _render_snapshot,
    "get_relationships": _render_snapshot,
    "get_ancestors": _render_account_page,
    "get_descendants": _render_account_page,
    "get_hierarchy": _render_hierarchy,
    "check_circular": _render_circular,
    # Maintenance
    "check": _render_check,
    "upgrade": _render_upgrade,
}
