"""
Lambda handlers for the site API

This module serves as the entry point for all functions.
It re-exports handlers from their respective modules for the function configuration.

Architecture:
- Frontend -> function -> REST API (<base>/rest/v1) for gallery and journal rows
- Frontend -> function -> storage API (<base>/storage/v1) for gallery images
- Admin page -> update_site_handler -> build hook

Handlers:
1. gallery_handler: Lists, creates (upload + insert), updates and deletes gallery items
2. journal_handler: Lists, creates, updates and deletes journal entries
3. upload_handler: Legacy image upload + gallery insert
4. auth_check_handler: Checks the admin password
5. update_site_handler: Triggers a site rebuild through the build hook
"""

from site_backend.handlers.auth_handlers import auth_check_handler
from site_backend.handlers.gallery_handlers import gallery_handler
from site_backend.handlers.journal_handlers import journal_handler
from site_backend.handlers.site_handlers import update_site_handler
from site_backend.handlers.upload_handlers import upload_handler

__all__ = [
    "gallery_handler",
    "journal_handler",
    "upload_handler",
    "auth_check_handler",
    "update_site_handler",
]
