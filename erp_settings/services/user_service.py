"""
User Service

Handles admin panel users:
- Create users with roles
- Lookup by email/id and password check for login
- Role and capability checks used by the AJAX actions
"""

import os
import sqlite3
import secrets
import logging
from datetime import datetime
from typing import Optional, List, Set

from werkzeug.security import generate_password_hash, check_password_hash

logger = logging.getLogger(__name__)

MANAGE_OPTIONS = 'manage_options'
HR_MANAGER = 'erp_hr_manager'
AC_MANAGER = 'erp_ac_manager'
CRM_MANAGER = 'erp_crm_manager'

# Capabilities granted by each role. A role name is itself checkable as a capability.
ROLE_CAPABILITIES = {
    'administrator': {MANAGE_OPTIONS, HR_MANAGER, AC_MANAGER, CRM_MANAGER},
    HR_MANAGER: {HR_MANAGER},
    AC_MANAGER: {AC_MANAGER},
    CRM_MANAGER: {CRM_MANAGER},
    'employee': set(),
}


def get_role_capabilities(roles: List[str]) -> Set[str]:
    """Union of the capabilities granted by the given roles"""
    capabilities = set()
    for role in roles:
        capabilities.add(role)
        capabilities.update(ROLE_CAPABILITIES.get(role, set()))
    return capabilities


def has_capability(user: Optional[dict], capability: str) -> bool:
    """
    Check whether a user holds a capability

    Args:
        user: User dict as returned by UserService, or None for anonymous
        capability: Capability or role name

    Returns:
        bool: False for anonymous or inactive users
    """
    if not user or not user.get('is_active', True):
        return False
    return capability in get_role_capabilities(user.get('roles', []))


class UserService:
    """Service for managing admin panel users."""

    def __init__(self, db_path: str = 'data/users.db'):
        self.db_path = db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._ensure_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection."""
        return sqlite3.connect(self.db_path)

    def _ensure_schema(self):
        """Create users table if missing."""
        conn = self._get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    user_id TEXT PRIMARY KEY,
                    email TEXT UNIQUE NOT NULL,
                    display_name TEXT,
                    password_hash TEXT NOT NULL,
                    roles TEXT NOT NULL DEFAULT '',
                    created_at TEXT,
                    last_login TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def generate_user_id(self, email: str) -> str:
        """Generate unique user_id from email."""
        prefix = email.split('@')[0][:10]
        suffix = secrets.token_hex(4)
        return f"user_{prefix}_{suffix}"

    @staticmethod
    def _row_to_user(row) -> dict:
        return {
            'user_id': row[0],
            'email': row[1],
            'display_name': row[2],
            'roles': [role for role in (row[3] or '').split(',') if role],
            'created_at': row[4],
            'last_login': row[5],
            'is_active': bool(row[6]),
        }

    def create_user(self, email: str, password: str, display_name: str = '', roles: Optional[List[str]] = None) -> dict:
        """
        Create a new user

        Args:
            email: Login email (stored lowercase)
            password: Plain password, stored hashed
            display_name: Name used as default email sender name
            roles: Role names, see ROLE_CAPABILITIES

        Returns:
            dict: Created user

        Raises:
            ValueError: If email or password is missing or the email is taken
        """
        email = (email or '').strip().lower()
        if not email or not password:
            raise ValueError("Email and password are required")

        user_id = self.generate_user_id(email)
        roles = roles or []
        now = datetime.now().isoformat()

        conn = self._get_connection()
        try:
            conn.execute("""
                INSERT INTO users (user_id, email, display_name, password_hash, roles, created_at, is_active)
                VALUES (?, ?, ?, ?, ?, ?, 1)
            """, (user_id, email, display_name or email.split('@')[0], generate_password_hash(password), ','.join(roles), now))
            conn.commit()
        except sqlite3.IntegrityError:
            raise ValueError(f"User already exists: {email}")
        finally:
            conn.close()

        logger.info(f"[USER_SERVICE] Created user: {email} (roles: {', '.join(roles) or 'none'})")
        return self.get_user_by_id(user_id)

    def get_user_by_email(self, email: str) -> Optional[dict]:
        conn = self._get_connection()
        try:
            row = conn.execute("""
                SELECT user_id, email, display_name, roles, created_at, last_login, is_active
                FROM users WHERE email = ?
            """, ((email or '').strip().lower(),)).fetchone()
            return self._row_to_user(row) if row else None
        finally:
            conn.close()

    def get_user_by_id(self, user_id: str) -> Optional[dict]:
        conn = self._get_connection()
        try:
            row = conn.execute("""
                SELECT user_id, email, display_name, roles, created_at, last_login, is_active
                FROM users WHERE user_id = ?
            """, (user_id,)).fetchone()
            return self._row_to_user(row) if row else None
        finally:
            conn.close()

    def authenticate(self, email: str, password: str) -> Optional[dict]:
        """
        Check login credentials

        Returns:
            dict: The user if the password matches and the user is active, else None
        """
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT user_id, password_hash, is_active FROM users WHERE email = ?",
                ((email or '').strip().lower(),)
            ).fetchone()
        finally:
            conn.close()

        if not row or not row[2] or not check_password_hash(row[1], password or ''):
            return None

        self.update_last_login(row[0])
        return self.get_user_by_id(row[0])

    def update_last_login(self, user_id: str) -> bool:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "UPDATE users SET last_login = ? WHERE user_id = ?",
                (datetime.now().isoformat(), user_id)
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def set_roles(self, user_id: str, roles: List[str]) -> bool:
        conn = self._get_connection()
        try:
            cursor = conn.execute("UPDATE users SET roles = ? WHERE user_id = ?", (','.join(roles), user_id))
            conn.commit()
        finally:
            conn.close()

        if cursor.rowcount:
            logger.info(f"[USER_SERVICE] Roles for {user_id} set to: {', '.join(roles) or 'none'}")
        return cursor.rowcount > 0

    def count_users(self) -> int:
        conn = self._get_connection()
        try:
            return conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        finally:
            conn.close()

    def ensure_admin(self, email: str, password: str) -> Optional[dict]:
        """
        Seed the first administrator when the users table is empty

        Returns:
            dict: Created admin, or None if users already exist or no password is configured
        """
        if not password or self.count_users() > 0:
            return None
        logger.info(f"[USER_SERVICE] No users found, seeding administrator {email}")
        return self.create_user(email, password, display_name='Administrator', roles=['administrator'])
