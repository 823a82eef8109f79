"""Store administration for the SCIM provisioning server.

Creates the schema, loads the demo users and lists stored users. Everything
goes through the same UserRepository the API uses.
"""
from __future__ import annotations
import argparse
import os
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from scim_server.core.scim_transformer import ScimTransformer
from scim_server.storage import (
    ConstraintViolation,
    SqlAlchemyUserRepository,
    UserRepository,
    create_db_engine,
    create_session_factory,
    init_db,
)

DEMO_USERS = [
    {
        "userName": "mdaldo@fake.domain",
        "name": {"givenName": "Micky", "familyName": "Daldo"},
        "displayName": "Micky Daldo",
        "active": True,
        "emails": [
            {"type": "work", "value": "mdaldo@fake.domain", "primary": True},
            {"type": "personal", "value": "mdaldo@personal.domain", "primary": False},
        ],
    },
    {
        "userName": "dslem@fake.domain",
        "name": {"givenName": "Dan", "familyName": "Slem"},
        "displayName": "Dan Slem",
        "active": True,
        "emails": [],
    },
    {
        "userName": "smahesh@fake.domain",
        "name": {"givenName": "Sarika", "familyName": "Mahesh"},
        "displayName": "Sarika Mahesh",
        "active": True,
        "emails": [
            {"type": "work", "value": "smahesh@fake.domain", "primary": True},
        ],
    },
]


def seed_demo_users(repository: UserRepository) -> int:
    """Insert the demo users that are not stored yet.

    Returns:
        Number of users created
    """
    created = 0
    for scim_user in DEMO_USERS:
        if repository.list(scim_user["userName"]):
            print(f"[seed] {scim_user['userName']} already present, skipping")
            continue
        user = repository.add(ScimTransformer.to_persisted(scim_user))
        print(f"[seed] created {user.user_name} (id={user.id})")
        created += 1
    return created


def build_repository(database_url: str) -> SqlAlchemyUserRepository:
    engine = create_db_engine(database_url)
    init_db(engine)
    return SqlAlchemyUserRepository(create_session_factory(engine))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="SCIM user store helper")
    parser.add_argument("--database-url", default=os.environ.get("DATABASE_URL", "sqlite:///scim.db"))
    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("init-db", help="Create the users/emails tables")
    sub.add_parser("seed", help="Load the demo users")
    sub.add_parser("list", help="Print stored users, newest first")

    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 1

    repository = build_repository(args.database_url)

    if args.cmd == "init-db":
        print(f"[init-db] schema ready on {args.database_url}")
    elif args.cmd == "seed":
        try:
            created = seed_demo_users(repository)
        except ConstraintViolation as e:
            print(f"[seed] Error: {e}", file=sys.stderr)
            return 1
        print(f"[seed] {created} user(s) created")
    elif args.cmd == "list":
        for user in repository.list():
            state = "active" if user.active else "inactive"
            emails = ", ".join(email.value for email in user.emails) or "-"
            print(f"{user.id}\t{user.user_name}\t{state}\t{emails}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
