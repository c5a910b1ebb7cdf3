import click
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from config import config

db = SQLAlchemy()


def create_app(config_name='default'):
    """Application factory — creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from clinic_pos.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)

    # ── Blueprints ────────────────────────────────────────────────
    from clinic_pos.pricing import pricing as pricing_blueprint
    app.register_blueprint(pricing_blueprint, url_prefix='/pricing')

    from clinic_pos.billing import billing as billing_blueprint
    app.register_blueprint(billing_blueprint, url_prefix='/billing')

    # ── Error Handlers ────────────────────────────────────────────
    @app.errorhandler(400)
    def bad_request(e):
        return jsonify(error='Bad request'), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify(error='Not found'), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify(error='Method not allowed'), 405

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.error(f"Unhandled server error: {e}")
        return jsonify(error='Server error'), 500

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    return app


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables and the settings row."""
        from clinic_pos.pricing.models import Settings

        db.create_all()
        click.echo('✅  Database tables created.')

        if not db.session.get(Settings, 1):
            percent = app.config['DEFAULT_COMMISSION_PERCENT']
            db.session.add(Settings(id=1, commission_default_percent=percent))
            db.session.commit()
            click.echo(f'✅  Settings seeded (default commission {percent}%).')
        else:
            click.echo('ℹ️   Settings row already exists.')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Populate database with demo categories, products and treatments."""
        from decimal import Decimal
        from clinic_pos.pricing.models import (
            CustomerCategory, Product, ProductPrice, Treatment, Settings,
        )

        click.echo("🌱 Seeding demo data...")
        db.create_all()

        if not db.session.get(Settings, 1):
            db.session.add(Settings(id=1, commission_default_percent=app.config['DEFAULT_COMMISSION_PERCENT']))

        categories = {}
        for code, name in [('PASIEN', 'Pasien'), ('UMUM', 'Umum'), ('MEMBER', 'Member')]:
            cat = CustomerCategory.query.filter_by(code=code).first()
            if cat is None:
                cat = CustomerCategory(code=code, name=name)
                db.session.add(cat)
            categories[code] = cat
        db.session.flush()
        click.echo("✅ Categories created.")

        # sku, name, cost, {category: price}
        products = [
            ('SKN-001', 'Facial Wash 100ml',   '32000.00', {'PASIEN': '55000.00', 'UMUM': '60000.00', 'MEMBER': '50000.00'}),
            ('SKN-002', 'Sunscreen SPF 50',    '48000.00', {'PASIEN': '85000.00', 'UMUM': '95000.00', 'MEMBER': '80000.00'}),
            ('SKN-003', 'Night Cream 30g',     '61000.00', {'PASIEN': '120000.00', 'UMUM': '135000.00', 'MEMBER': '110000.00'}),
        ]
        if Product.query.count() == 0:
            for sku, name, cost, prices in products:
                p = Product(sku=sku, name=name, cost_price=Decimal(cost))
                db.session.add(p)
                db.session.flush()
                for code, price in prices.items():
                    db.session.add(ProductPrice(product_id=p.id, category_id=categories[code].id,
                                                price=Decimal(price)))
            click.echo("✅ Products and price lists seeded.")

        treatments = [
            ('Facial Basic',   '150000.00', '40000.00'),
            ('Chemical Peel',  '350000.00', '120000.00'),
            ('Laser Toning',   '750000.00', '260000.00'),
        ]
        if Treatment.query.count() == 0:
            for name, sell, cost in treatments:
                db.session.add(Treatment(name=name, sell_price=Decimal(sell), cost_price=Decimal(cost)))
            click.echo("✅ Treatments seeded.")

        db.session.commit()
        click.echo("✅ Demo seed complete.")

    @app.cli.command('quote')
    @click.option('--price',    required=True, help='Unit price')
    @click.option('--qty',      default='1', show_default=True, help='Quantity')
    @click.option('--cost',     default='0', show_default=True, help='Unit cost price')
    @click.option('--discount-type', type=click.Choice(['NONE', 'PERCENT', 'NOMINAL'], case_sensitive=False),
                  default='NONE', show_default=True)
    @click.option('--discount-value', default='0', show_default=True)
    def quote(price, qty, cost, discount_type, discount_value):
        """Print the breakdown for one line (no DB access)."""
        from clinic_pos.pricing.validators import validate_line_input, validate_amount
        from clinic_pos.pricing.calculations import calc_line_totals

        errors = validate_line_input({
            'item_type': 'PRODUCT', 'product_id': 0, 'qty': qty,
            'discount_type': discount_type, 'discount_value': discount_value,
        })
        errors.update(validate_amount(price, 'price'))
        errors.update(validate_amount(cost, 'cost'))
        if errors:
            for field, message in errors.items():
                click.echo(f'⚠️  {field}: {message}')
            raise SystemExit(1)

        result = calc_line_totals(price, qty, discount_type, discount_value, cost)
        for field, value in result.as_dict().items():
            click.echo(f'{field:<14} {value:>14}')
