"""Demo script for the module compliance engine.

This demonstrates:
1. Validating a single module
2. Batch validation of a small repository with progress reporting
3. Ecosystem summary
4. Dry-run and real auto-fix with re-validation

Usage:
    python examples/demo_compliance.py
"""

import asyncio
import json
import tempfile
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from modcomply.audit import BatchOptions, ComplianceService, FixOptions
from modcomply.config import configure_logging
from modcomply.models import BatchProgress, ValidationReport, ValidationStatus

console = Console()

STATUS_STYLE = {
    ValidationStatus.PASS: "green",
    ValidationStatus.PARTIAL: "cyan",
    ValidationStatus.WARNING: "yellow",
    ValidationStatus.FAIL: "red",
    ValidationStatus.ERROR: "bold red",
}


def build_demo_repository(root: Path) -> Path:
    """Lay out a repository with one complete and two incomplete modules."""
    repo = root / "repo"

    auth = repo / "packages" / "auth"
    (auth / "src").mkdir(parents=True)
    (auth / "tests").mkdir()
    (auth / "package.json").write_text(json.dumps({
        "name": "auth",
        "version": "2.1.0",
        "scripts": {"build": "tsc", "test": "jest"},
    }, indent=2))
    (auth / "README.md").write_text("# auth\n\nSession handling and token verification for every service.\n")
    (auth / "tsconfig.json").write_text('{"compilerOptions": {"strict": true}}\n')
    (auth / ".gitignore").write_text("node_modules/\ndist/\n")
    (auth / "src" / "index.ts").write_text("export const verify = (token: string) => token.length > 0;\n")
    (auth / "tests" / "index.test.ts").write_text("test('verifies', () => expect(true).toBe(true));\n")

    search = repo / "packages" / "search-api"
    (search / "src").mkdir(parents=True)
    (search / "package.json").write_text(json.dumps({"name": "search-api", "version": "0.3.0"}))
    (search / "src" / "index.ts").write_text(
        "".join(f"export const handler{i} = () => {i};\n" for i in range(240))
    )

    web = repo / "apps" / "web"
    (web / "src").mkdir(parents=True)
    (web / "package.json").write_text(json.dumps({
        "name": "web",
        "version": "1.0.0",
        "dependencies": {"react": "^18.2.0"},
    }))
    (web / "src" / "config.ts").write_text('export const apiKey = "sk-live-0123456789abcdef";\n')

    return repo


def show_report(report: ValidationReport) -> None:
    """Render one report as a table."""
    table = Table(title=f"{report.module_name} ({report.module_type.value}) score {report.overall_score}")
    table.add_column("Rule", style="cyan")
    table.add_column("Status")
    table.add_column("Severity", style="magenta")
    table.add_column("Message")

    for result in report.results:
        style = STATUS_STYLE[result.status]
        table.add_row(
            result.rule_id,
            f"[{style}]{result.status.value}[/{style}]",
            result.severity.value,
            result.message,
        )

    console.print(table)
    for recommendation in report.recommendations:
        console.print(f"  • {recommendation}")


async def run_demo():
    """Run the compliance engine demo."""
    configure_logging("WARNING")
    console.print(Panel.fit(
        "[bold blue]Module Compliance Engine[/bold blue]\n"
        "[dim]Validate, score and auto-fix modules[/dim]",
        border_style="blue",
    ))

    with tempfile.TemporaryDirectory() as tmp:
        repo = build_demo_repository(Path(tmp))
        service = ComplianceService()

        # 1. Single module
        console.print("\n[bold cyan]═══ Single Module ═══[/bold cyan]\n")
        show_report(await service.validate_module(repo / "packages" / "auth"))

        # 2. Ecosystem batch
        console.print("\n[bold cyan]═══ Ecosystem Batch ═══[/bold cyan]\n")

        def on_progress(progress: BatchProgress) -> None:
            console.print(
                f"[dim]{progress.completed}/{progress.total} modules "
                f"({progress.percentage}%), {progress.failed} failed[/dim]"
            )

        batch = await service.validate_ecosystem(repo, BatchOptions(max_parallel=2, on_progress=on_progress))
        for item in batch.successful_results:
            show_report(item.result)

        # 3. Summary
        summary = service.summarize(batch)
        table = Table(title="Ecosystem Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Modules", str(summary.total_modules))
        table.add_row("Average score", str(summary.average_score))
        table.add_row("Status distribution", ", ".join(f"{k}={v}" for k, v in summary.status_distribution.items()))
        table.add_row("Top violations", ", ".join(f"{v.rule_id} ({v.count})" for v in summary.top_violations[:5]))
        console.print(table)

        # 4. Auto-fix
        console.print("\n[bold cyan]═══ Auto-Fix ═══[/bold cyan]\n")
        target = repo / "packages" / "search-api"
        plan, _ = await service.fix(target, fix_options=FixOptions(dry_run=True))
        console.print(f"Dry run would fix {plan.fixed_violations} of {plan.total_violations} violations")

        fixed, after = await service.fix(target)
        for outcome in fixed.results:
            console.print(f"  {outcome.status.value:8} {outcome.rule_id}: {', '.join(outcome.applied_fixes)}")
        show_report(after)

    console.print(Panel.fit("[bold green]✓ Demo complete[/bold green]", border_style="green"))


if __name__ == "__main__":
    asyncio.run(run_demo())
