"""Library circulation backend.

Catalog of books and copies, patrons and employees, the loan lifecycle
and overdue fines, with a Typer command-line front end.
"""

__version__ = "0.1.0"
