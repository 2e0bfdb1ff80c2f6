from __future__ import annotations

from dataclasses import dataclass

from supabase import Client, create_client

from src.app.config import Settings
from src.app.infra.auth.base import AuthGateway
from src.app.infra.auth.supabase_auth_gateway import SupabaseAuthGateway
from src.app.infra.db.base import (
    CommentRepository,
    LikeRepository,
    ProfileRepository,
    RecipeRepository,
)
from src.app.infra.db.supabase_repos import (
    SupabaseCommentRepository,
    SupabaseLikeRepository,
    SupabaseProfileRepository,
    SupabaseRecipeRepository,
)
from src.app.infra.storage.base import StorageProvider
from src.app.infra.storage.supabase_storage import SupabaseStorageProvider


@dataclass
class Backend:
    """Every gateway collaborator the app talks to, injected as one value."""
    auth: AuthGateway
    profiles: ProfileRepository
    recipes: RecipeRepository
    comments: CommentRepository
    likes: LikeRepository
    storage: StorageProvider


def create_supabase_client(settings: Settings) -> Client:
    return create_client(str(settings.SUPABASE_URL).rstrip("/"), settings.SUPABASE_ANON_KEY)


def build_supabase_backend(settings: Settings, client: Client | None = None) -> Backend:
    client = client or create_supabase_client(settings)
    return Backend(
        auth=SupabaseAuthGateway(client),
        profiles=SupabaseProfileRepository(client),
        recipes=SupabaseRecipeRepository(client),
        comments=SupabaseCommentRepository(client),
        likes=SupabaseLikeRepository(client),
        storage=SupabaseStorageProvider(client, settings.RECIPE_IMAGES_BUCKET),
    )
