"""Command-line interface for circulation.

Built with Typer for commands and Rich for output.
"""

import json
from decimal import Decimal
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .catalog import BookCreate, BookResponse, CatalogManager, CopyResponse, CopyStatus
from .config import get_config
from .db import get_db
from .exceptions import CirculationError
from .fines import FineCreate, FineManager, FineResponse, FineStatus
from .loans import LoanManager, LoanResponse, LoanStatus, RenewalResponse
from .logging_config import setup_logging
from .patrons import (
    EmployeeCreate,
    EmployeeResponse,
    PatronCreate,
    PatronManager,
    PatronResponse,
    PatronStatus,
)

# Create the main app
app = typer.Typer(
    name="circulation",
    help="Library circulation: patrons, copies, loans and fines.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
patron_app = typer.Typer(help="Manage patrons.")
employee_app = typer.Typer(help="Manage employees.")
book_app = typer.Typer(help="Manage the catalog.")
copy_app = typer.Typer(help="Manage physical copies.")
loan_app = typer.Typer(help="Lend, renew and return copies.")
fine_app = typer.Typer(help="Enter, pay and cancel fines.")
app.add_typer(patron_app, name="patron")
app.add_typer(employee_app, name="employee")
app.add_typer(book_app, name="book")
app.add_typer(copy_app, name="copy")
app.add_typer(loan_app, name="loan")
app.add_typer(fine_app, name="fine")

# Rich console for pretty output
console = Console()


@app.callback()
def main_callback() -> None:
    """Validate configuration and set up logging before any command runs."""
    config = get_config()
    errors = config.validate()
    if errors:
        for error in errors:
            print_error(f"Invalid configuration: {error}")
        raise typer.Exit(1)
    setup_logging(config.log_level)


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def fail(error: CirculationError) -> None:
    """Report a rejected operation and exit with status 1."""
    print_error(error.message)
    raise typer.Exit(1)


def format_money(value: Decimal) -> str:
    return f"{value:.2f}"


def print_models(models) -> None:
    """Print pydantic models (one or a list) as JSON."""
    if isinstance(models, list):
        data = [m.model_dump(mode="json") for m in models]
    else:
        data = models.model_dump(mode="json")
    console.print_json(json.dumps(data))


def format_loan_table(loans: list, title: str = "Loans") -> Table:
    """Create a rich table for displaying loans."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", max_width=36)
    table.add_column("Patron", style="cyan", max_width=36)
    table.add_column("Copy", style="green", max_width=36)
    table.add_column("Status", style="yellow")
    table.add_column("Due", justify="center")
    table.add_column("Returned", justify="center")

    for loan in loans:
        status = loan.status
        if loan.is_overdue:
            status = f"[red]{status} (late)[/red]"
        table.add_row(
            loan.id,
            loan.patron_id,
            loan.copy_id,
            status,
            loan.due_at.strftime("%Y-%m-%d"),
            loan.returned_at.strftime("%Y-%m-%d") if loan.returned_at else "-",
        )

    return table


# ============================================================================
# Patron Commands
# ============================================================================


@patron_app.command("add")
def patron_add(
    name: str = typer.Option(..., "--name", "-n", help="Full name"),
    document: str = typer.Option(..., "--document", "-d", help="CPF, 11 digits"),
    email: str = typer.Option(..., "--email", "-e", help="Email address"),
    phone: Optional[str] = typer.Option(None, "--phone", "-p", help="Phone number"),
) -> None:
    """Register a patron."""
    try:
        data = PatronCreate(name=name, document=document, email=email, phone=phone)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    try:
        patron = PatronManager(get_db()).create_patron(data)
    except CirculationError as e:
        fail(e)

    print_success(f"Patron registered: {patron.name}")
    console.print(f"[dim]ID: {patron.id}[/dim]")


@patron_app.command("show")
def patron_show(
    patron_id: str = typer.Argument(..., help="Patron ID"),
    json_format: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show a patron with open loans and pending fines."""
    db = get_db()
    manager = PatronManager(db)
    patron = manager.get_patron(patron_id)
    if not patron:
        print_error(f"Patron not found: {patron_id}")
        raise typer.Exit(1)

    if json_format:
        print_models(PatronResponse.model_validate(patron))
        return

    totals = FineManager(db).get_totals(patron_id)
    lines = [
        f"[bold]{patron.name}[/bold]",
        f"Document: {patron.document}",
        f"Email: {patron.email}",
        f"Status: {patron.status}",
        f"Open loans: {manager.count_active_loans(patron_id)}",
        f"Late-return history: {'yes' if manager.has_overdue_history(patron_id) else 'no'}",
        f"Pending fines: {totals.pending_count} ({format_money(totals.pending_value)})",
    ]
    console.print(Panel("\n".join(lines), title="Patron"))


@patron_app.command("list")
def patron_list(
    status: Optional[PatronStatus] = typer.Option(None, "--status", "-s", help="Filter by status"),
) -> None:
    """List patrons."""
    patrons = PatronManager(get_db()).list_patrons(status=status)
    if not patrons:
        console.print("[dim]No patrons found.[/dim]")
        return

    table = Table(title="Patrons", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Email")
    table.add_column("Status", style="yellow")
    for p in patrons:
        table.add_row(p.id, p.name, p.email, p.status)
    console.print(table)


@patron_app.command("unblock")
def patron_unblock(patron_id: str = typer.Argument(..., help="Patron ID")) -> None:
    """Lift a patron's block."""
    try:
        patron = PatronManager(get_db()).set_blocked(patron_id, False)
    except CirculationError as e:
        fail(e)
    print_success(f"{patron.name} is {patron.status}")


# ============================================================================
# Employee Commands
# ============================================================================


@employee_app.command("add")
def employee_add(
    name: str = typer.Option(..., "--name", "-n", help="Full name"),
    document: str = typer.Option(..., "--document", "-d", help="CPF, 11 digits"),
    email: str = typer.Option(..., "--email", "-e", help="Email address"),
    phone: Optional[str] = typer.Option(None, "--phone", "-p", help="Phone number"),
) -> None:
    """Register an employee."""
    try:
        data = EmployeeCreate(name=name, document=document, email=email, phone=phone)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    try:
        employee = PatronManager(get_db()).create_employee(data)
    except CirculationError as e:
        fail(e)

    print_success(f"Employee registered: {employee.name}")
    console.print(f"[dim]ID: {employee.id}[/dim]")


@employee_app.command("list")
def employee_list(
    json_format: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List employees."""
    employees = PatronManager(get_db()).list_employees()
    if json_format:
        print_models([EmployeeResponse.model_validate(e) for e in employees])
        return
    if not employees:
        console.print("[dim]No employees found.[/dim]")
        return

    table = Table(title="Employees", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Status", style="yellow")
    for e in employees:
        table.add_row(e.id, e.name, e.status)
    console.print(table)


# ============================================================================
# Catalog Commands
# ============================================================================


@book_app.command("add")
def book_add(
    title: str = typer.Option(..., "--title", "-t", help="Book title"),
    author: str = typer.Option(..., "--author", "-a", help="Author name"),
    value: str = typer.Option(..., "--value", "-v", help="Replacement value"),
    publisher: Optional[str] = typer.Option(None, "--publisher", help="Publisher"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g", help="Genre"),
    pages: Optional[int] = typer.Option(None, "--pages", help="Page count"),
    copies: int = typer.Option(1, "--copies", "-c", help="Copies to register"),
) -> None:
    """Add a book to the catalog."""
    try:
        data = BookCreate(
            title=title,
            author=author,
            value=value,
            publisher=publisher,
            genre=genre,
            pages=pages,
        )
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    book = CatalogManager(get_db()).create_book(data, copies=copies)
    print_success(f"Added: {book.title} ({copies} copies)")
    console.print(f"[dim]ID: {book.id}[/dim]")


@book_app.command("list")
def book_list(
    json_format: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List books with copy counts."""
    manager = CatalogManager(get_db())
    if json_format:
        print_models([BookResponse.model_validate(b) for b in manager.list_books()])
        return

    inventory = manager.get_inventory()
    if not inventory:
        console.print("[dim]The catalog is empty.[/dim]")
        return

    table = Table(title="Catalog", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Copies", justify="right")
    table.add_column("Available", justify="right", style="green")
    table.add_column("Loaned", justify="right", style="yellow")
    for line in inventory:
        table.add_row(
            line.book_id,
            line.title,
            str(line.total_copies),
            str(line.available_copies),
            str(line.loaned_copies),
        )
    console.print(table)


@copy_app.command("add")
def copy_add(
    book_id: str = typer.Argument(..., help="Book ID"),
    count: int = typer.Option(1, "--count", "-c", help="Number of copies"),
) -> None:
    """Register copies of a book."""
    try:
        copies = CatalogManager(get_db()).add_copies(book_id, count)
    except CirculationError as e:
        fail(e)

    print_success(f"Added {len(copies)} copies")
    for copy in copies:
        console.print(f"[dim]ID: {copy.id}[/dim]")


@copy_app.command("list")
def copy_list(
    book_id: Optional[str] = typer.Option(None, "--book", "-b", help="Filter by book"),
    status: Optional[CopyStatus] = typer.Option(None, "--status", "-s", help="Filter by status"),
    json_format: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List copies."""
    copies = CatalogManager(get_db()).list_copies(book_id=book_id, status=status)
    if json_format:
        print_models([CopyResponse.model_validate(c) for c in copies])
        return
    if not copies:
        console.print("[dim]No copies found.[/dim]")
        return

    table = Table(title="Copies", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Book", style="cyan")
    table.add_column("Status", style="yellow")
    for copy in copies:
        table.add_row(copy.id, copy.book_id, copy.status)
    console.print(table)


@copy_app.command("status")
def copy_status(
    copy_id: str = typer.Argument(..., help="Copy ID"),
    status: CopyStatus = typer.Argument(..., help="New status"),
) -> None:
    """Mark a copy as damaged, lost or available."""
    if status == CopyStatus.LOANED:
        print_error("Copies are marked loaned only by creating a loan")
        raise typer.Exit(1)

    try:
        copy = CatalogManager(get_db()).update_copy_status(copy_id, status)
    except CirculationError as e:
        fail(e)
    print_success(f"Copy {copy.id} is {copy.status}")


# ============================================================================
# Loan Commands
# ============================================================================


@loan_app.command("create")
def loan_create(
    patron_id: str = typer.Option(..., "--patron", "-p", help="Patron ID"),
    copy_id: str = typer.Option(..., "--copy", "-c", help="Copy ID"),
    employee_id: str = typer.Option(..., "--employee", "-e", help="Employee ID"),
) -> None:
    """Lend a copy to a patron."""
    try:
        loan = LoanManager(get_db(), get_config()).create_loan(patron_id, copy_id, employee_id)
    except CirculationError as e:
        fail(e)

    print_success(f"Loan created, due {loan.due_at.strftime('%Y-%m-%d')}")
    console.print(f"[dim]ID: {loan.id}[/dim]")


@loan_app.command("renew")
def loan_renew(
    loan_id: str = typer.Argument(..., help="Loan ID"),
    employee_id: str = typer.Option(..., "--employee", "-e", help="Employee ID"),
    patron_id: Optional[str] = typer.Option(None, "--patron", "-p", help="Requesting patron"),
) -> None:
    """Extend a loan's due date."""
    try:
        loan = LoanManager(get_db(), get_config()).renew_loan(
            loan_id, employee_id, patron_id=patron_id
        )
    except CirculationError as e:
        fail(e)

    print_success(
        f"Loan renewed until {loan.due_at.strftime('%Y-%m-%d')} "
        f"(renewal #{loan.renewal_count})"
    )


@loan_app.command("return")
def loan_return(
    loan_id: str = typer.Argument(..., help="Loan ID"),
    patron_id: str = typer.Option(..., "--patron", "-p", help="Patron ID"),
    employee_id: str = typer.Option(..., "--employee", "-e", help="Employee ID"),
) -> None:
    """Take a copy back."""
    db = get_db()
    try:
        loan = LoanManager(db, get_config()).return_loan(employee_id, patron_id, loan_id)
    except CirculationError as e:
        fail(e)

    print_success(f"Loan closed as {loan.status}")
    fine = FineManager(db, get_config()).get_fine_for_loan(loan.id)
    if fine:
        print_warning(f"Fine of {format_money(fine.value)} for {fine.days_late} day(s) late")
    if loan.status == LoanStatus.OVERDUE.value:
        print_warning("Fine reached its cap; the patron is now blocked")


@loan_app.command("show")
def loan_show(
    loan_id: str = typer.Argument(..., help="Loan ID"),
    json_format: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show a loan with its renewals."""
    manager = LoanManager(get_db(), get_config())
    loan = manager.get_loan(loan_id)
    if not loan:
        print_error(f"Loan not found: {loan_id}")
        raise typer.Exit(1)

    renewals = manager.list_renewals(loan_id)
    if json_format:
        data = LoanResponse.model_validate(loan).model_dump(mode="json")
        data["renewals"] = [
            RenewalResponse.model_validate(r).model_dump(mode="json") for r in renewals
        ]
        console.print_json(json.dumps(data))
        return

    lines = [
        f"Patron: {loan.patron_id}",
        f"Copy: {loan.copy_id}",
        f"Status: {loan.status}",
        f"Loaned: {loan.loaned_at.strftime('%Y-%m-%d %H:%M')}",
        f"Due: {loan.due_at.strftime('%Y-%m-%d %H:%M')}",
        f"Returned: {loan.returned_at.strftime('%Y-%m-%d %H:%M') if loan.returned_at else '-'}",
    ]
    for renewal in renewals:
        lines.append(f"Renewed {renewal.renewed_at[:10]} -> due {renewal.new_due_date[:10]}")
    console.print(Panel("\n".join(lines), title=f"Loan {loan.id}"))


@loan_app.command("list")
def loan_list(
    patron_id: Optional[str] = typer.Option(None, "--patron", "-p", help="Filter by patron"),
    status: Optional[LoanStatus] = typer.Option(None, "--status", "-s", help="Filter by status"),
    open_only: bool = typer.Option(False, "--open", help="Only loans not yet returned"),
    json_format: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List loans."""
    loans = LoanManager(get_db(), get_config()).list_loans(
        patron_id=patron_id, status=status, open_only=open_only
    )
    if json_format:
        print_models([LoanResponse.model_validate(loan) for loan in loans])
        return
    if not loans:
        console.print("[dim]No loans found.[/dim]")
        return
    console.print(format_loan_table(loans))


@loan_app.command("overdue")
def loan_overdue() -> None:
    """List open loans past their due date."""
    report = LoanManager(get_db(), get_config()).get_overdue_loans()
    if not report.loans:
        console.print("[green]No overdue loans.[/green]")
        return

    table = Table(title="Overdue loans", show_header=True, header_style="bold red")
    table.add_column("Patron", style="cyan")
    table.add_column("Book", style="green", max_width=40)
    table.add_column("Due", justify="center")
    table.add_column("Days late", justify="right", style="red")
    for summary in report.loans:
        table.add_row(
            summary.patron_name,
            summary.book_title,
            summary.due_date.strftime("%Y-%m-%d"),
            str(summary.days_overdue),
        )
    console.print(table)
    console.print(f"[dim]{report.total_overdue} overdue, oldest {report.oldest_overdue_days} day(s)[/dim]")


# ============================================================================
# Fine Commands
# ============================================================================


@fine_app.command("add")
def fine_add(
    loan_id: str = typer.Argument(..., help="Loan ID"),
    days_late: int = typer.Option(..., "--days", "-d", help="Days late"),
) -> None:
    """Enter or correct a fine for a returned loan."""
    try:
        fine = FineManager(get_db(), get_config()).add_fine(
            FineCreate(loan_id=loan_id, days_late=days_late)
        )
    except CirculationError as e:
        fail(e)

    print_success(f"Fine of {format_money(fine.value)} recorded")
    console.print(f"[dim]ID: {fine.id}[/dim]")


@fine_app.command("pay")
def fine_pay(fine_id: str = typer.Argument(..., help="Fine ID")) -> None:
    """Pay a fine. The patron becomes active again."""
    try:
        fine = FineManager(get_db(), get_config()).pay_fine(fine_id)
    except CirculationError as e:
        fail(e)
    print_success(f"Fine of {format_money(fine.value)} paid")


@fine_app.command("cancel")
def fine_cancel(fine_id: str = typer.Argument(..., help="Fine ID")) -> None:
    """Cancel a pending fine."""
    try:
        FineManager(get_db(), get_config()).cancel_fine(fine_id)
    except CirculationError as e:
        fail(e)
    print_success(f"Fine {fine_id} cancelled")


@fine_app.command("list")
def fine_list(
    patron_id: Optional[str] = typer.Option(None, "--patron", "-p", help="Filter by patron"),
    status: Optional[FineStatus] = typer.Option(None, "--status", "-s", help="Filter by status"),
    json_format: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List fines."""
    fines = FineManager(get_db(), get_config()).list_fines(patron_id=patron_id, status=status)
    if json_format:
        print_models([FineResponse.model_validate(fine) for fine in fines])
        return
    if not fines:
        console.print("[dim]No fines found.[/dim]")
        return

    table = Table(title="Fines", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Loan", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Days late", justify="right")
    table.add_column("Status", style="yellow")
    for fine in fines:
        table.add_row(
            fine.id,
            fine.loan_id,
            format_money(fine.value),
            str(fine.days_late),
            fine.status,
        )
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"circulation version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
