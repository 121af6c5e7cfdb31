"""speclint CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from speclint import __version__
from speclint.linter.rule import VALID_CATEGORIES

if TYPE_CHECKING:
    from speclint.linter.config import LintConfig
    from speclint.linter.fix import Fix
    from speclint.linter.runner import LintResult
    from speclint.linter.violation import Violation


@click.group()
@click.version_option(version=__version__, prog_name="speclint")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output (debug logging).")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """speclint - lint and auto-fix OpenAPI documents."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_config(config_path: Path | None, *, no_external_refs: bool) -> LintConfig:
    """Load an explicit or discovered config file; exit 2 when it is invalid."""
    from speclint.linter.config import ConfigError, LintConfig, find_config, load_config

    path = config_path or find_config(Path.cwd())
    try:
        config = load_config(path) if path is not None else LintConfig()
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    if no_external_refs:
        config.resolve.disable_external_refs = True
    return config


def _config_option(func: object) -> object:
    return click.option(
        "--config",
        "config_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
        help="Config file (default: .speclint.yaml in the current directory).",
    )(func)


def _external_refs_option(func: object) -> object:
    return click.option(
        "--no-external-refs",
        is_flag=True,
        default=False,
        help="Do not fetch documents referenced by external $ref.",
    )(func)


def _selection_options(func: object) -> object:
    func = click.option(
        "--disable",
        "-d",
        "disabled",
        multiple=True,
        help="Rule id to disable (repeatable).",
    )(func)
    return click.option(
        "--ruleset",
        "-r",
        "rulesets",
        multiple=True,
        help="Ruleset to run instead of the configured ones (repeatable).",
    )(func)


def _select_rules(config: LintConfig, rulesets: tuple[str, ...], disabled: tuple[str, ...]) -> None:
    """Apply --ruleset and --disable on top of the loaded config."""
    from speclint.linter.config import RuleSetting

    if rulesets:
        config.extends = list(rulesets)
    for rule_id in disabled:
        current = config.rules.get(rule_id)
        severity = current.severity if current is not None else None
        config.rules[rule_id] = RuleSetting(id=rule_id, severity=severity, disabled=True)


class ClickPrompter:
    """Ask a fix's prompts on the terminal.  An empty free-text answer skips the fix."""

    def ask(self, violation: Violation, fix: Fix) -> list[str]:
        from speclint.linter.fix import PromptKind
        from speclint.linter.fixer import SkipFix

        click.echo(violation.render())
        click.echo(f"  fix: {fix.description()}")
        answers: list[str] = []
        for prompt in fix.prompts():
            if prompt.kind is PromptKind.CHOICE:
                answer = click.prompt(
                    f"  {prompt.message}",
                    type=click.Choice(list(prompt.choices)),
                    default=prompt.default,
                )
            else:
                answer = click.prompt(
                    f"  {prompt.message} (empty to skip)", default="", show_default=False
                )
                if not str(answer).strip():
                    raise SkipFix
            answers.append(str(answer))
        return answers


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_config_option
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["text", "json"]),
    default=None,
    help="Output format (default: from config, else text).",
)
@click.option("--strict", is_flag=True, default=False, help="Exit 1 if violations found.")
@_selection_options
@click.option("--summary", is_flag=True, default=False, help="Print a per-rule count of findings.")
@_external_refs_option
def lint(
    *,
    file: Path,
    config_path: Path | None,
    fmt: str | None,
    strict: bool,
    rulesets: tuple[str, ...],
    disabled: tuple[str, ...],
    summary: bool,
    no_external_refs: bool,
) -> None:
    """Lint an OpenAPI document.

    Exit codes: 0 = clean or violations without --strict,
    1 = violations with --strict, 2 = configuration or input error.
    """
    from speclint.document.model import Document, DocumentError
    from speclint.linter.config import ConfigError
    from speclint.linter.format import format_json, format_text
    from speclint.linter.runner import lint as run_lint
    from speclint.rules import default_registry

    config = _load_config(config_path, no_external_refs=no_external_refs)
    _select_rules(config, rulesets, disabled)
    try:
        document = Document.from_path(file)
        result = run_lint(document, default_registry(), config)
    except (ConfigError, DocumentError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    output_format = fmt or config.output_format
    if output_format == "json":
        click.echo(format_json(result, per_rule=summary))
    else:
        click.echo(format_text(result))
        if summary and result.violations:
            _print_rule_counts(result)

    if strict and result.violations:
        sys.exit(1)


def _print_rule_counts(result: LintResult) -> None:
    from rich.console import Console
    from rich.table import Table

    from speclint.linter.format import rule_counts

    table = Table(title="Findings by rule", box=None, padding=(0, 1))
    table.add_column("rule", style="cyan")
    table.add_column("severity")
    table.add_column("count", justify="right")
    table.add_column("fixable", justify="right")
    for count in rule_counts(result):
        table.add_row(count.rule_id, count.severity.value, str(count.count), str(count.fixable))
    Console(width=200).print(table)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_config_option
@click.option("--interactive", "-i", is_flag=True, default=False, help="Prompt for interactive fixes.")
@click.option("--dry-run", is_flag=True, default=False, help="Show fixes without writing.")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the fixed document here instead of overwriting FILE.",
)
@_selection_options
@_external_refs_option
def fix(
    *,
    file: Path,
    config_path: Path | None,
    interactive: bool,
    dry_run: bool,
    output: Path | None,
    rulesets: tuple[str, ...],
    disabled: tuple[str, ...],
    no_external_refs: bool,
) -> None:
    """Apply fixes to an OpenAPI document.

    Automatic fixes are always applied; interactive ones only with --interactive.
    The document is re-linted afterwards and the remaining count reported.
    """
    from speclint.document.model import Document, DocumentError
    from speclint.linter.config import ConfigError
    from speclint.linter.fixer import FixEngine, FixMode, FixOptions, SkipReason, revalidate
    from speclint.linter.runner import lint as run_lint
    from speclint.rules import default_registry

    config = _load_config(config_path, no_external_refs=no_external_refs)
    _select_rules(config, rulesets, disabled)
    registry = default_registry()
    try:
        document = Document.from_path(file)
        result = run_lint(document, registry, config)
    except (ConfigError, DocumentError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    options = FixOptions(
        mode=FixMode.INTERACTIVE if interactive else FixMode.AUTO, dry_run=dry_run
    )
    engine = FixEngine(options, prompter=ClickPrompter() if interactive else None)
    outcome = engine.process(document, result.violations)

    verb = "would fix" if dry_run else "fixed"
    for applied in outcome.applied:
        v = applied.violation
        fix_text = v.fix.description() if v.fix is not None else ""
        click.echo(f"{verb} [{v.line}:{v.column}] {v.rule_id}: {fix_text}")
        if applied.before or applied.after:
            click.echo(f"  - {applied.before}")
            click.echo(f"  + {applied.after}")
    for failed in outcome.failed:
        click.echo(f"failed {failed.violation.render()}: {failed.error}", err=True)
    waiting = sum(1 for s in outcome.skipped if s.reason is SkipReason.INTERACTIVE)
    if waiting:
        click.echo(f"{waiting} fixes need input; re-run with --interactive")

    if dry_run:
        click.echo(f"{len(outcome.applied)} fixes would be applied (dry run)")
        return

    if outcome.applied:
        target = output or file
        target.write_text(document.dump(), encoding="utf-8")
        click.echo(f"{len(outcome.applied)} fixes applied, written to {target}")
    else:
        click.echo("No fixes applied")

    _fresh, remaining = revalidate(document, registry, config)
    click.echo(f"{len(remaining)} violations remaining")


@main.command("rules")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)
@click.option(
    "--category",
    type=click.Choice(sorted(VALID_CATEGORIES)),
    default=None,
    help="Only rules in this category.",
)
@click.option("--ruleset", default=None, help="Only rules in this ruleset.")
def list_rules(*, fmt: str, category: str | None, ruleset: str | None) -> None:
    """List the built-in rules."""
    from speclint.rules import default_registry

    registry = default_registry()
    if ruleset is not None and not registry.has_ruleset(ruleset):
        known = ", ".join(registry.ruleset_names())
        click.echo(f"Error: unknown ruleset {ruleset!r} (known: {known})", err=True)
        sys.exit(2)

    rules = sorted(registry.all_rules(), key=lambda r: r.id)
    if category is not None:
        rules = [rule for rule in rules if rule.category == category]
    if ruleset is not None:
        members = set(registry.ruleset(ruleset))
        rules = [rule for rule in rules if rule.id in members]

    if fmt == "json":
        payload = [
            {
                "id": rule.id,
                "category": rule.category,
                "severity": rule.default_severity.value,
                "versions": list(rule.versions) if rule.versions else None,
                "rulesets": registry.rulesets_containing(rule.id),
                "summary": rule.summary,
                "description": rule.description,
                "how_to_fix": rule.how_to_fix,
                "link": rule.link,
                "fix_available": rule.fix_available,
            }
            for rule in rules
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    from rich.console import Console
    from rich.table import Table

    table = Table(title="Rules", box=None, padding=(0, 1))
    table.add_column("id", style="cyan")
    table.add_column("category")
    table.add_column("severity")
    table.add_column("versions")
    table.add_column("rulesets")
    table.add_column("fix")
    table.add_column("summary")
    for rule in rules:
        table.add_row(
            rule.id,
            rule.category,
            rule.default_severity.value,
            ", ".join(rule.versions) if rule.versions else "all",
            ", ".join(registry.rulesets_containing(rule.id)),
            "yes" if rule.fix_available else "",
            rule.summary,
        )
    Console(width=200).print(table)


@main.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["markdown", "json"]),
    default="markdown",
    help="Output format.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the reference to this file instead of stdout.",
)
def docs(*, fmt: str, output: Path | None) -> None:
    """Generate the rule reference, grouped by category."""
    from speclint.linter.docs import render_json, render_markdown
    from speclint.rules import default_registry

    registry = default_registry()
    text = render_json(registry) if fmt == "json" else render_markdown(registry)
    if output is None:
        click.echo(text, nl=False)
        return
    output.write_text(text, encoding="utf-8")
    click.echo(f"Wrote rule reference to {output}")
