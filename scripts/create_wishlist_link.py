import argparse
from datetime import datetime, timedelta, timezone

from seedvault.database import SessionLocal
from seedvault.models import Season, SeasonStatus, WishlistSession
from seedvault.routers.seasons import magic_link


def main():
    parser = argparse.ArgumentParser(description="Issue a wishlist magic link for a season")
    parser.add_argument("--season", required=True, help="Season name (created in Planning status if missing)")
    parser.add_argument("--name", required=True, help="Name of the person or household the list is for")
    parser.add_argument("--days", type=int, help="Link lifetime in days (never expires if not set)")

    args = parser.parse_args()

    session = SessionLocal()
    try:
        season = session.query(Season).filter(Season.name == args.season).first()
        if not season:
            print(f"No season named '{args.season}'. Creating it.")
            season = Season(name=args.season, status=SeasonStatus.PLANNING.value)
            session.add(season)
            session.flush()

        expires_at = None
        if args.days:
            expires_at = datetime.now(timezone.utc) + timedelta(days=args.days)

        wishlist = WishlistSession(season_id=season.id, list_name=args.name.strip(), expires_at=expires_at)
        session.add(wishlist)
        session.commit()

        print(f"Wishlist for '{wishlist.list_name}' ({season.name})")
        print(f"Link: {magic_link(wishlist.id)}")
        if expires_at:
            print(f"Expires: {expires_at.isoformat()}")
    except Exception as e:
        print(f"Error: {e}")
        session.rollback()
    finally:
        session.close()


if __name__ == "__main__":
    main()
