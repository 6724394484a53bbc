#!/usr/bin/env python3
"""
Database setup script for the Business Back-Office API
Creates tables and the initial admin user
"""

import os
import sys
import getpass

# Add parent directory to path to import backoffice
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from werkzeug.exceptions import BadRequest

from backoffice import create_app, db
from backoffice.config import config
from backoffice.models import User, UserRole, Provider, Invoice, Expense
from backoffice.services.user_service import UserService

def create_database():
    """Create all database tables."""
    print("Creating database tables...")

    try:
        db.create_all()
        print("✅ Database tables created successfully")
        return True

    except Exception as e:
        print(f"❌ Error creating database: {str(e)}")
        return False

def create_admin_user():
    """Create initial admin user."""
    print("\nCreating admin user...")

    existing_admin = User.query.filter_by(role=UserRole.ADMIN).first()
    if existing_admin:
        print(f"✅ Admin user already exists: {existing_admin.email}")
        return existing_admin

    email = input("Enter admin email: ").strip()
    password = getpass.getpass("Enter admin password (min 6 characters): ").strip()
    first_name = input("Enter first name: ").strip() or "Admin"
    last_name = input("Enter last name: ").strip() or "User"

    try:
        admin = UserService().create({
            'email': email,
            'password': password,
            'first_name': first_name,
            'last_name': last_name,
            'role': UserRole.ADMIN
        })

        print(f"✅ Admin user created successfully!")
        print(f"   Email: {admin.email}")
        print(f"   Role: {admin.role}")
        return admin

    except BadRequest as e:
        print(f"❌ Error creating admin user: {e.description}")
        db.session.rollback()
        return None

def check_database_health():
    """Check database connectivity and basic operations."""
    print("\nChecking database health...")

    try:
        print(f"✅ Database connection successful")
        print(f"   Users: {User.query.count()}")
        print(f"   Providers: {Provider.query.count()}")
        print(f"   Invoices: {Invoice.query.count()}")
        print(f"   Expenses: {Expense.query.count()}")
        return True

    except Exception as e:
        print(f"❌ Database health check failed: {str(e)}")
        return False

def main():
    """Main setup function."""
    print("🚀 Business Back-Office - Database Setup")
    print("=" * 50)

    app = create_app(config[os.environ.get('FLASK_CONFIG', 'default')])

    with app.app_context():
        if not create_database():
            print("❌ Setup failed at database creation step")
            return False

        if not create_admin_user():
            print("❌ Setup failed at admin user creation step")
            return False

        if not check_database_health():
            print("❌ Setup failed at health check step")
            return False

        print("\n" + "=" * 50)
        print("🎉 Database setup completed successfully!")
        print("\nNext steps:")
        print("1. Start the application: python app.py")
        print("2. Log in with POST /auth/login to get a bearer token")
        return True

if __name__ == "__main__":
    main()
