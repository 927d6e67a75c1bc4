# cheesy_pos/cli.py
from datetime import datetime, timedelta

import click
from flask import current_app
from werkzeug.security import generate_password_hash

from .extensions import db
from .model import User
from .utils.decorators import ROLES


@click.command("create-user")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
@click.option("--role", type=click.Choice(ROLES), default="cashier", show_default=True)
def create_user(email, password, name, role):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    u = User(email=email, name=name, password_hash=generate_password_hash(password), role=role)
    db.session.add(u); db.session.commit()
    click.echo(f"User created: {u.id} {u.email} ({u.role})")


@click.command("seed-products")
def seed_products_command():
    from .seed import seed_products
    from .services import pos
    added = seed_products()
    pos().catalog.invalidate()
    click.echo(f"{added} product(s) added")


@click.command("export-sales")
@click.option("--start", required=True, help="First store-local day, YYYY-MM-DD")
@click.option("--end", required=True, help="Last store-local day (inclusive), YYYY-MM-DD")
@click.option("--out", "out_path", required=True, type=click.Path(dir_okay=False, writable=True))
def export_sales(start, end, out_path):
    from .services import pos
    from .services.sales_service import Transaction, sales_csv

    offset = timedelta(hours=float(current_app.config["STORE_UTC_OFFSET_HOURS"]))
    try:
        start_at = datetime.fromisoformat(start) - offset
        end_at = datetime.fromisoformat(end) + timedelta(days=1) - offset
    except ValueError:
        raise click.BadParameter("dates must be YYYY-MM-DD")

    transactions = [Transaction.from_sale(s) for s in pos().store.fetch_transactions(start_at, end_at)]
    with open(out_path, "w", encoding="utf-8", newline="") as fh:
        fh.write(sales_csv(transactions, offset.total_seconds() / 3600))
    click.echo(f"{len(transactions)} sale(s) exported to {out_path}")


def register_cli(app):
    app.cli.add_command(create_user)
    app.cli.add_command(seed_products_command)
    app.cli.add_command(export_sales)
