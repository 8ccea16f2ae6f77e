#!/usr/bin/env python3
"""
Database Seed Script

Populates the database with sample books, a demo reader and a few reviews
for local development.

USAGE:
    # From the project root with the package installed
    python scripts/seed_data.py

    # Keep existing rows and only add what is missing
    python scripts/seed_data.py --keep

The demo reader signs in with demo@example.com / demo-password.
"""

import argparse

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from catalog.database import SessionLocal, create_tables
from catalog.models import Book, Review, User, UserSession
from catalog.services.security import hash_password

DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "demo-password"

BOOKS = [
    {
        "title": "Dune",
        "author": "Frank Herbert",
        "published_year": 1965,
        "genre": "Sci-Fi",
        "isbn": "9780441172719",
        "rating": 4.6,
        "summary": "A noble family is handed the desert planet Arrakis, the only source "
                   "of the most valuable substance in the universe.",
    },
    {
        "title": "1984",
        "author": "George Orwell",
        "published_year": 1949,
        "genre": "Dystopian",
        "isbn": "9780451524935",
        "rating": 4.5,
        "summary": "Winston Smith works for the Ministry of Truth in a state that "
                   "watches everything and rewrites the past.",
    },
    {
        "title": "Pride and Prejudice",
        "author": "Jane Austen",
        "published_year": 1813,
        "genre": "Romance",
        "isbn": "9780141439518",
        "rating": 4.4,
        "summary": "Elizabeth Bennet and Mr. Darcy misjudge each other across a "
                   "season of balls, letters and proposals.",
    },
    {
        "title": "The Left Hand of Darkness",
        "author": "Ursula K. Le Guin",
        "published_year": 1969,
        "genre": "Sci-Fi",
        "isbn": "9780441478125",
        "rating": 4.2,
        "summary": "An envoy to the icebound world of Gethen must make sense of a "
                   "people without fixed sex.",
    },
    {
        "title": "Beloved",
        "author": "Toni Morrison",
        "published_year": 1987,
        "genre": "Literary Fiction",
        "isbn": "9781400033416",
        "rating": 4.3,
        "summary": "Sethe, who escaped slavery, is haunted in Cincinnati by the ghost "
                   "of the daughter she lost.",
    },
]

REVIEWS = {
    "9780441172719": {
        "rating": 5,
        "title": "Still the benchmark",
        "content": "The ecology, the politics and the religion all hang together.",
        "is_verified_purchase": True,
    },
    "9780451524935": {
        "rating": 4,
        "title": "Uncomfortably current",
        "content": "Bleak, but the appendix on Newspeak alone is worth the read.",
    },
}


def clear_data(db: Session) -> None:
    """Clear all existing data from the database."""
    print("Clearing existing data...")
    db.execute(delete(Review))
    db.execute(delete(Book))
    db.execute(delete(UserSession))
    db.execute(delete(User))
    db.commit()
    print("Data cleared.")


def create_demo_user(db: Session) -> User:
    user = db.execute(select(User).where(User.email == DEMO_EMAIL)).scalar_one_or_none()
    if user is None:
        user = User(
            email=DEMO_EMAIL,
            display_name="Demo Reader",
            hashed_password=hash_password(DEMO_PASSWORD),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        print(f"Created demo user {DEMO_EMAIL}.")
    return user


def create_books(db: Session) -> dict[str, Book]:
    """Create sample books, skipping ISBNs already in the catalog."""
    print("Creating books...")
    books = {}
    for data in BOOKS:
        book = db.execute(select(Book).where(Book.isbn == data["isbn"])).scalar_one_or_none()
        if book is None:
            book = Book(**data)
            db.add(book)
        books[data["isbn"]] = book

    db.commit()
    print(f"Catalog has {len(books)} sample books.")
    return books


def create_reviews(db: Session, user: User, books: dict[str, Book]) -> int:
    created = 0
    for isbn, data in REVIEWS.items():
        book = books[isbn]
        exists = db.execute(
            select(Review).where(Review.book_id == book.id, Review.user_id == user.id)
        ).scalar_one_or_none()
        if exists is None:
            db.add(Review(book_id=book.id, user_id=user.id, **data))
            created += 1

    db.commit()
    print(f"Created {created} reviews.")
    return created


def seed_database(clear_existing: bool = True) -> None:
    """
    Main function to seed the database.

    Args:
        clear_existing: If True, clears existing data before seeding.
    """
    print("=" * 60)
    print("Starting database seed...")
    print("=" * 60)

    # Create tables if they don't exist
    create_tables()

    db = SessionLocal()

    try:
        if clear_existing:
            clear_data(db)

        user = create_demo_user(db)
        books = create_books(db)
        create_reviews(db, user, books)

        print("=" * 60)
        print("Database seeding completed successfully!")
        print("=" * 60)
        print(f"\nSign in with {DEMO_EMAIL} / {DEMO_PASSWORD}")
        print("API documentation at http://localhost:3000/api-docs")

    except Exception as e:
        print(f"Error seeding database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the catalog with sample data")
    parser.add_argument("--keep", action="store_true", help="Keep existing data")
    args = parser.parse_args()

    seed_database(clear_existing=not args.keep)
