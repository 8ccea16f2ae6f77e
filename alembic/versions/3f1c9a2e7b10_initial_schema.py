"""initial_schema

Revision ID: 3f1c9a2e7b10
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2e7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, comment="User's email address (used for login)"),
        sa.Column('hashed_password', sa.String(length=255), nullable=True, comment='Bcrypt hashed password (null for OAuth-only users)'),
        sa.Column('google_id', sa.String(length=255), nullable=True, comment='Google account id'),
        sa.Column('github_id', sa.String(length=255), nullable=True, comment='GitHub account id'),
        sa.Column('display_name', sa.String(length=255), nullable=False, comment="Name shown next to the user's reviews"),
        sa.Column('avatar_url', sa.Text(), nullable=True, comment='Profile picture URL, usually taken from the OAuth profile'),
        sa.Column('role', sa.String(length=20), nullable=False, comment='user or admin'),
        sa.Column('is_active', sa.Boolean(), nullable=False, comment='Inactive users cannot sign in'),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True, comment='When the user last signed in'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'hashed_password IS NOT NULL OR google_id IS NOT NULL OR github_id IS NOT NULL',
            name='ck_users_has_credential',
        ),
        sa.CheckConstraint("role IN ('user', 'admin')", name='ck_users_role'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_google_id'), 'users', ['google_id'], unique=True)
    op.create_index(op.f('ix_users_github_id'), 'users', ['github_id'], unique=True)

    op.create_table(
        'books',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False, comment='Book title'),
        sa.Column('author', sa.String(length=255), nullable=False, comment='Author name as printed on the cover'),
        sa.Column('published_year', sa.Integer(), nullable=False, comment='Year of first publication'),
        sa.Column('genre', sa.String(length=100), nullable=False),
        sa.Column('isbn', sa.String(length=13), nullable=False, comment='ISBN-10 or ISBN-13, digits only (X allowed as ISBN-10 check digit)'),
        sa.Column('rating', sa.Float(), nullable=False, comment='Catalog rating from 0 to 5'),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('rating >= 0 AND rating <= 5', name='ck_book_rating_range'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_books_title'), 'books', ['title'], unique=False)
    op.create_index(op.f('ix_books_isbn'), 'books', ['isbn'], unique=True)
    op.create_index(op.f('ix_books_created_at'), 'books', ['created_at'], unique=False)

    op.create_table(
        'reviews',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('book_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False, comment='Rating from 1-5 stars'),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('helpful_votes', sa.Integer(), nullable=False, comment='Number of helpful votes'),
        sa.Column('is_verified_purchase', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_review_rating_range'),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('book_id', 'user_id', name='uq_review_book_user'),
    )
    op.create_index(op.f('ix_reviews_book_id'), 'reviews', ['book_id'], unique=False)
    op.create_index(op.f('ix_reviews_user_id'), 'reviews', ['user_id'], unique=False)
    op.create_index(op.f('ix_reviews_created_at'), 'reviews', ['created_at'], unique=False)

    op.create_table(
        'sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('token_digest', sa.String(length=64), nullable=False, comment='HMAC-SHA256 of the session token'),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False, comment='After this instant the session resolves to nobody'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_sessions_token_digest'), 'sessions', ['token_digest'], unique=True)
    op.create_index(op.f('ix_sessions_user_id'), 'sessions', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_sessions_user_id'), table_name='sessions')
    op.drop_index(op.f('ix_sessions_token_digest'), table_name='sessions')
    op.drop_table('sessions')

    op.drop_index(op.f('ix_reviews_created_at'), table_name='reviews')
    op.drop_index(op.f('ix_reviews_user_id'), table_name='reviews')
    op.drop_index(op.f('ix_reviews_book_id'), table_name='reviews')
    op.drop_table('reviews')

    op.drop_index(op.f('ix_books_created_at'), table_name='books')
    op.drop_index(op.f('ix_books_isbn'), table_name='books')
    op.drop_index(op.f('ix_books_title'), table_name='books')
    op.drop_table('books')

    op.drop_index(op.f('ix_users_github_id'), table_name='users')
    op.drop_index(op.f('ix_users_google_id'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
