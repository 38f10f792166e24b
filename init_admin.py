#!/usr/bin/env python3
"""
Initialize the default admin account for the patient management system.
Run with: python3 init_admin.py   (or: flask --app wsgi seed-users)
"""
from pms import create_app
from pms.seeds import seed_default_users


def create_admins():
    """Create the bootstrap admin user"""
    app = create_app()

    with app.app_context():
        print("=" * 60)
        print("Initializing Admin User")
        print("=" * 60)

        created = seed_default_users()
        for username in created:
            print(f"  ✓ Created: {username} (admin)")

        print("=" * 60)
        print(f"✅ Created {len(created)} new admin user(s)")
        print("=" * 60)
        print("\n⚠️  IMPORTANT: Change passwords after first login!")
        print("\nAvailable Roles:")
        print("  - admin")
        print("  - assistant")
        print("  - user")


if __name__ == '__main__':
    create_admins()
