"""Content schema: both partitions, tags/media child rows, engagement ledgers

- curated_content / user_content (unique slug per table)
- content_tags, content_media
- content_views, content_likes, content_downloads (PK = at most once per actor)
- actor_liked_content (actor-side like mirror)

Idempotent.
"""

from __future__ import annotations

from alembic import op

from wallhub.db import metadata

revision = "20261019_0001_content_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    metadata.create_all(op.get_bind(), checkfirst=True)


def downgrade() -> None:
    raise NotImplementedError("Downgrades are not supported for the baseline content schema.")
