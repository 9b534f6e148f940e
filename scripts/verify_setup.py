#!/usr/bin/env python3
"""
Verify the rental portfolio finance service setup.

Checks packages, environment, the database schema (tables and the two finance
views) and host resources before the service is started.
"""

import asyncio
import importlib
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import psutil
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

load_dotenv()

# Initialize Rich console for pretty output
console = Console()

# (distribution name, import name)
REQUIRED_PACKAGES = [
    ("fastapi", "fastapi"),
    ("uvicorn", "uvicorn"),
    ("sqlalchemy", "sqlalchemy"),
    ("asyncpg", "asyncpg"),
    ("alembic", "alembic"),
    ("pydantic", "pydantic"),
    ("pydantic-settings", "pydantic_settings"),
    ("structlog", "structlog"),
]

REQUIRED_TABLES = [
    "alembic_version",
    "apartment_buildings",
    "apartment_units",
    "leases",
    "invoices",
    "payments",
    "expenses",
    "user_profiles",
    "maintenance_requests",
]

REQUIRED_VIEWS = [
    "vw_lease_arrears_detail",
    "vw_lease_prepayment_status",
]


class SetupVerifier:
    """Verify system setup and configuration."""

    def __init__(self):
        self.checks_passed = []
        self.checks_failed = []
        self.warnings = []

    def check_python_version(self) -> bool:
        """Check Python version is 3.11+."""
        version = sys.version_info
        if version.major == 3 and version.minor >= 11:
            self.checks_passed.append(f"Python {version.major}.{version.minor}.{version.micro}")
            return True
        else:
            self.checks_failed.append(
                f"Python version {version.major}.{version.minor} (requires 3.11+)"
            )
            return False

    def check_required_packages(self) -> bool:
        """Check required packages are installed."""
        all_installed = True
        for package, module in REQUIRED_PACKAGES:
            try:
                importlib.import_module(module)
                self.checks_passed.append(f"Package: {package}")
            except ImportError:
                self.checks_failed.append(f"Package not installed: {package}")
                all_installed = False

        return all_installed

    def check_env_variables(self) -> bool:
        """Check required environment variables."""
        optional_vars = ["REPORT_WINDOW_MONTHS", "REVENUE_INVOICE_TYPES", "LOG_LEVEL"]

        if os.getenv("DATABASE_URL"):
            self.checks_passed.append("Environment: DATABASE_URL")
            found = True
        else:
            self.checks_failed.append("Missing environment variable: DATABASE_URL")
            found = False

        for var in optional_vars:
            if not os.getenv(var):
                self.warnings.append(f"{var} not set, using default")

        return found

    async def check_database(self) -> bool:
        """Check database connection, tables and finance views."""
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            return False

        try:
            engine = create_async_engine(database_url)
            async with engine.begin() as conn:
                result = await conn.execute(text("SELECT 1"))
                result.scalar()
                self.checks_passed.append("Database connection")

                result = await conn.execute(text(
                    "SELECT table_name FROM information_schema.tables "
                    "WHERE table_schema = 'public' AND table_type = 'BASE TABLE'"
                ))
                tables = {row[0] for row in result}

                result = await conn.execute(text(
                    "SELECT table_name FROM information_schema.views "
                    "WHERE table_schema = 'public'"
                ))
                views = {row[0] for row in result}

            await engine.dispose()

        except Exception as e:
            self.checks_failed.append(f"Database error: {str(e)}")
            return False

        ok = True
        for table in REQUIRED_TABLES:
            if table in tables:
                self.checks_passed.append(f"Table: {table}")
            else:
                self.checks_failed.append(f"Missing table: {table}")
                ok = False

        for view in REQUIRED_VIEWS:
            if view in views:
                self.checks_passed.append(f"View: {view}")
            else:
                # The dashboard recomputes prepayments and shows no arrears without them
                self.warnings.append(f"Missing view: {view} - run alembic upgrade head")

        return ok

    def check_memory(self) -> bool:
        """Check available memory."""
        memory = psutil.virtual_memory()
        available_gb = memory.available / (1024**3)

        if available_gb > 0.5:
            self.checks_passed.append(f"Memory: {available_gb:.1f} GB available")
            return True
        else:
            self.warnings.append(f"Low memory: {available_gb:.1f} GB available")
            return False

    def success_rate(self) -> float:
        total = len(self.checks_passed) + len(self.checks_failed)
        return len(self.checks_passed) / total * 100 if total > 0 else 0

    def generate_report(self) -> None:
        """Generate verification report."""
        console.print("\n[bold blue]Setup Verification Report[/bold blue]\n")

        if len(self.checks_failed) == 0:
            console.print("[bold green]✅ All checks passed![/bold green]")
        else:
            console.print(f"[yellow]⚠️  {len(self.checks_failed)} checks failed[/yellow]")

        console.print(f"Success rate: {self.success_rate():.1f}%\n")

        for title, style, marker, rows in (
            ("Passed Checks", "green", "✓", self.checks_passed),
            ("Failed Checks", "red", "✗", self.checks_failed),
            ("Warnings", "yellow", "⚠", self.warnings),
        ):
            if not rows:
                continue
            table = Table(title=title, style=style)
            table.add_column("Component", style="cyan" if style == "green" else style)
            for row in rows:
                table.add_row(f"{marker} {row}")
            console.print(table)

    def save_report(self, path: Path) -> None:
        """Save verification report to file."""
        report = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks_passed": self.checks_passed,
            "checks_failed": self.checks_failed,
            "warnings": self.warnings,
            "success_rate": self.success_rate(),
        }

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(report, indent=2))
        console.print(f"\n[dim]Report saved to {path}[/dim]")


async def main():
    """Run setup verification."""
    verifier = SetupVerifier()

    console.print("[bold]Running setup verification...[/bold]\n")

    verifier.check_python_version()
    verifier.check_required_packages()
    verifier.check_env_variables()
    await verifier.check_database()
    verifier.check_memory()

    verifier.generate_report()
    verifier.save_report(Path("reports") / "setup_verification.json")

    if len(verifier.checks_failed) > 0:
        console.print("\n[red]❌ Setup verification failed. Please fix the issues above.[/red]")
        sys.exit(1)

    console.print("\n[green]✅ Setup verification complete![/green]")
    console.print("\n[bold]Next steps:[/bold]")
    console.print("1. Run database migrations: [cyan]alembic upgrade head[/cyan]")
    console.print("2. Run tests: [cyan]pytest[/cyan]")
    console.print("3. Start server: [cyan]uvicorn app.main:app --reload[/cyan]")


if __name__ == "__main__":
    asyncio.run(main())
