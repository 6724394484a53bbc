"""
Main application entry point for the Business Back-Office API
"""

import os
import click
from backoffice import create_app, db
from backoffice.config import config
from backoffice.models import User, UserRole, Provider, Invoice, Expense
from backoffice.services.user_service import UserService

# Create Flask application
app = create_app(config[os.environ.get('FLASK_CONFIG', 'default')])

@app.shell_context_processor
def make_shell_context():
    """Make database models available in Flask shell."""
    return {
        'db': db,
        'User': User,
        'Provider': Provider,
        'Invoice': Invoice,
        'Expense': Expense
    }

@app.cli.command()
def init_db():
    """Initialize the database."""
    db.create_all()
    click.echo("Database initialized successfully!")

@app.cli.command()
@click.option('--email', prompt='Admin email')
@click.option('--password', prompt='Admin password', hide_input=True, confirmation_prompt=True)
@click.option('--first-name', prompt='First name', default='Admin')
@click.option('--last-name', prompt='Last name', default='User')
def create_admin(email, password, first_name, last_name):
    """Create admin user."""
    admin = UserService().create({
        'email': email,
        'password': password,
        'first_name': first_name,
        'last_name': last_name,
        'role': UserRole.ADMIN
    })
    click.echo(f"Admin user created successfully: {admin.email}")

if __name__ == '__main__':
    # Development server
    app.run(host='0.0.0.0', port=app.config['PORT'], debug=app.config.get('DEBUG', False))
