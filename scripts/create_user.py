#!/usr/bin/env python
"""
Create User Script

Creates a settings panel user with roles.

Usage:
    python scripts/create_user.py --email admin@example.com --name "Admin" --role administrator
    python scripts/create_user.py --email hr@example.com --role erp_hr_manager
    python scripts/create_user.py --help
"""

import os
import sys
import getpass

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from erp_settings.config_manager import ConfigManager
from erp_settings.services.user_service import UserService, ROLE_CAPABILITIES


def print_usage() -> None:
    """Print usage information."""
    print(f"""
Usage: python scripts/create_user.py [OPTIONS]

Options:
    --email EMAIL    Login email address
    --name NAME      Display name (default: email prefix)
    --role ROLE      Role, may be repeated (default: administrator)
                     Known roles: {', '.join(ROLE_CAPABILITIES)}
    --help           Show this help message

The password is asked for interactively.
""")


def get_arg_values(args: list, flag: str) -> list:
    values = []
    for idx, arg in enumerate(args):
        if arg == flag and idx + 1 < len(args):
            values.append(args[idx + 1])
    return values


def main(args: list) -> bool:
    config = ConfigManager(env_file=os.path.join(PROJECT_ROOT, ".env"))
    user_service = UserService(config.storage.users_path)

    emails = get_arg_values(args, "--email")
    email = emails[0] if emails else input("Email: ").strip()
    if not email or "@" not in email:
        print("❌ A valid email is required")
        return False

    names = get_arg_values(args, "--name")
    name = names[0] if names else email.split("@")[0].title()

    roles = get_arg_values(args, "--role") or ["administrator"]
    unknown = [role for role in roles if role not in ROLE_CAPABILITIES]
    if unknown:
        print(f"❌ Unknown role(s): {', '.join(unknown)}")
        return False

    password = getpass.getpass("Password: ")
    if not password or password != getpass.getpass("Confirm password: "):
        print("❌ Passwords are empty or do not match")
        return False

    try:
        user = user_service.create_user(email, password, display_name=name, roles=roles)
    except ValueError as e:
        print(f"❌ {e}")
        return False

    print(f"\n✅ User created successfully!")
    print(f"   User ID: {user['user_id']}")
    print(f"   Email: {user['email']}")
    print(f"   Name: {user['display_name']}")
    print(f"   Roles: {', '.join(user['roles'])}")
    return True


if __name__ == "__main__":
    argv = sys.argv[1:]

    if "--help" in argv or "-h" in argv:
        print_usage()
        sys.exit(0)

    sys.exit(0 if main(argv) else 1)
