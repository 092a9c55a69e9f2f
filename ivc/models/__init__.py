"""ORM models. Importing this package registers every table on Base.metadata."""

from ivc.models import blog, rss, settings, social, user  # noqa: F401
