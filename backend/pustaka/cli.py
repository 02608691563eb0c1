# Overview: Flask CLI command groups for bootstrap, seeding, and stock inspection.

# backend/pustaka/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Idempotently create a demo publisher, sales associate, expedition and books.
#
# Stock inspection/repair:
# - python -m flask stock show [--book-id 1]
#   Print stock for one book or the whole catalog.
# - python -m flask stock set --book-id 1 --value 25
#   Absolute stock write (stock take correction).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Book, Expedition, Publisher, SalesAssociate
from .services.concurrency import commit_with_retry
from .services import stock_service
from .validation import NotFoundError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (no-op for tables that already exist)."""
    db.create_all()
    click.echo("OK Tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("BUILD  Creating all tables...")
    db.create_all()
    click.echo("OK Database reset complete")


@click.group('catalog')
def catalog_group():
    """Catalog and reference data commands."""


DEMO_BOOKS = [
    ("Laskar Pelangi", 2005, "Andrea Hirata", "9789793062792", 85000, 40),
    ("Bumi Manusia", 1980, "Pramoedya Ananta Toer", "9789799731234", 120000, 25),
    ("Negeri 5 Menara", 2009, "Ahmad Fuadi", "9789792248616", 75000, 30),
]


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Create demo reference data and books. Existing rows are left untouched."""
    publisher = db.session.query(Publisher).filter_by(name="Penerbit Demo").first()
    if not publisher:
        publisher = Publisher(name="Penerbit Demo", address="Jakarta", phone="021000000")
        db.session.add(publisher)
        db.session.flush()
        click.echo(f"OK Publisher created: {publisher.name}")

    if not db.session.query(SalesAssociate).filter_by(name="Toko Buku Demo").first():
        db.session.add(SalesAssociate(
            name="Toko Buku Demo",
            address="Bandung",
            phone="022000000",
            payment_type="T",
            discount=0,
        ))
        click.echo("OK Sales associate created: Toko Buku Demo")

    if not db.session.query(Expedition).filter_by(code="JNE").first():
        db.session.add(Expedition(code="JNE", name="JNE Express", phone="021111111"))
        click.echo("OK Expedition created: JNE Express")

    for name, year, author, isbn, price, stock in DEMO_BOOKS:
        if db.session.query(Book).filter_by(isbn=isbn).first():
            continue
        db.session.add(Book(
            name=name,
            year=year,
            author=author,
            isbn=isbn,
            price=price,
            stock=stock,
            publisher_id=publisher.id,
        ))
        click.echo(f"OK Book created: {name}")

    commit_with_retry()
    click.echo("OK Catalog seed complete")


@click.group('stock')
def stock_group():
    """Stock inspection and correction commands."""


@stock_group.command('show')
@click.option('--book-id', type=int, default=None, help='Only show this book')
@with_appcontext
def show_stock(book_id):
    """Print stock levels."""
    if book_id is not None:
        try:
            books = [stock_service.get_book(book_id)]
        except NotFoundError as e:
            raise click.ClickException(str(e))
    else:
        books = db.session.query(Book).order_by(Book.id).all()

    if not books:
        click.echo("No books found")
        return

    for book in books:
        click.echo(f"[{book.id}] {book.name}  stock={book.stock}  price={book.price}")


@stock_group.command('set')
@click.option('--book-id', type=int, required=True)
@click.option('--value', type=int, required=True, help='New absolute stock value')
@with_appcontext
def set_stock(book_id, value):
    """Overwrite a book's stock (stock take correction)."""
    try:
        book = stock_service.set_stock(book_id, value)
    except (NotFoundError, ValidationError) as e:
        raise click.ClickException(str(e))
    click.echo(f"OK Stock for [{book.id}] {book.name} set to {book.stock}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(stock_group)
