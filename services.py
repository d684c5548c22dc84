# The client bundle the pipeline runs against.
# Built once by the app factory (or by a test) and passed in explicitly.
from dataclasses import dataclass
from typing import Optional

from flask import current_app

from config import Settings
from db import Database
from genai_client import GenerationClient
from identity import TokenIdentityProvider
from result_store import ResultStore
from storage import ObjectStorage, build_object_storage


@dataclass
class ServiceBundle:
    settings: Settings
    database: Database
    generation_client: GenerationClient
    result_store: ResultStore
    object_storage: ObjectStorage
    identity: TokenIdentityProvider

    def init(self):
        # Database.create_all() itself only ever runs once
        self.database.create_all()
        return self

    def close(self):
        self.database.dispose()


def build_services(
    settings: Settings,
    generation_client: Optional[GenerationClient] = None,
    object_storage: Optional[ObjectStorage] = None,
) -> ServiceBundle:
    database = Database(settings.DATABASE_URL)
    bundle = ServiceBundle(
        settings=settings,
        database=database,
        generation_client=generation_client or GenerationClient.from_settings(settings),
        result_store=ResultStore(database, settings.APP_ID),
        object_storage=object_storage or build_object_storage(settings),
        identity=TokenIdentityProvider(settings.SECRET_KEY, settings.TOKEN_MAX_AGE_SECONDS),
    )
    return bundle.init()


EXTENSION_KEY = "gameplay_services"


def current_services() -> ServiceBundle:
    """The bundle attached to the running Flask app by create_app()."""
    return current_app.extensions[EXTENSION_KEY]
