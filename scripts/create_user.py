import argparse

from sqlalchemy.orm import Session

from db import SessionLocal
from filebox.models.user import User
from filebox.services.auth import create_user, hash_password, rotate_api_key


def upsert_user(
    username: str, password: str | None, make_admin: bool, with_api_key: bool
) -> tuple[bool, int, str | None]:
    s: Session = SessionLocal()
    try:
        user = s.query(User).filter(User.Username == username).first()
        created = False
        if not user:
            if not password:
                raise ValueError("Password required to create a new user")
            user = create_user(s, username, password)
            if not user:
                raise ValueError("Username already exists or failed to create user")
            created = True
        elif password:
            user.HashedPassword = hash_password(password)
        user.IsActive = True
        if make_admin:
            user.IsAdmin = True
        s.commit()
        api_key = rotate_api_key(s, user) if with_api_key else None
        s.refresh(user)
        return created, int(user.UserID), api_key
    finally:
        s.close()


def main():
    parser = argparse.ArgumentParser(description="Create or update a user (optionally admin).")
    parser.add_argument("--username", required=True)
    parser.add_argument("--password", default=None)
    parser.add_argument("--admin", action="store_true", help="Grant admin role")
    parser.add_argument("--api-key", action="store_true", help="Issue a fresh API key")
    args = parser.parse_args()

    created, user_id, api_key = upsert_user(
        username=args.username.strip(),
        password=args.password,
        make_admin=bool(args.admin),
        with_api_key=bool(args.api_key),
    )
    status = "created" if created else "updated"
    print(f"User {status}: id={user_id} username={args.username} admin={args.admin}")
    if api_key:
        print(f"API key: {api_key}")


if __name__ == "__main__":
    main()
