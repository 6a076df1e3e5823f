"""
Integration Tests - GraphQL Schema

Executes operations against the composed schema with a real store behind it.
"""

import pytest
from strawberry.types import Info

from mediatrack import __version__
from mediatrack.config import Settings
from mediatrack.config.settings import FileStorageSettings, MoviesSettings, UsersSettings
from mediatrack.database.connection import session_scope
from mediatrack.database.models import Metadata, MetadataLot
from mediatrack.serving.api.graphql import MASKED_MESSAGE, build_schema
from mediatrack.serving.api.registry import OperationSet

pytestmark = pytest.mark.integration

schema = build_schema()


def error_kinds(result):
    return [error.extensions.get("kind") for error in result.errors or []]


class TestCoreQueries:
    """Tests for enabled features and service details"""

    async def test_enabled_features(self, make_context):
        """Test books on and movies off are reported per domain"""
        result = await schema.execute(
            "{ coreEnabledFeatures { metadata { name enabled } general { name enabled } } }",
            context_value=make_context(),
        )

        assert result.errors is None
        features = result.data["coreEnabledFeatures"]
        metadata = {f["name"]: f["enabled"] for f in features["metadata"]}
        assert metadata == {
            "BOOK": True,
            "MOVIE": False,
            "SHOW": True,
            "VIDEO_GAME": False,
            "AUDIO_BOOK": True,
            "PODCAST": True,
        }
        assert features["general"] == [{"name": "FILE_STORAGE", "enabled": False}]

    async def test_file_storage_flag(self, make_context):
        settings = Settings(
            app_env="testing",
            file_storage=FileStorageSettings(
                s3_bucket_name="media", s3_access_key_id="key", s3_secret_access_key="secret"
            ),
        )

        result = await schema.execute(
            "{ coreEnabledFeatures { general { name enabled } } }",
            context_value=make_context(settings),
        )

        assert result.data["coreEnabledFeatures"]["general"] == [{"name": "FILE_STORAGE", "enabled": True}]

    async def test_core_details(self, make_context):
        result = await schema.execute(
            "{ coreDetails { version authorName repositoryLink usernameChangeAllowed } }",
            context_value=make_context(),
        )

        assert result.data["coreDetails"] == {
            "version": __version__,
            "authorName": "ignisda",
            "repositoryLink": "https://github.com/ignisda/ryot",
            "usernameChangeAllowed": True,
        }


class TestReviewFlow:
    """Tests for the review, association and summary path"""

    async def test_end_to_end(self, store, session_factory, make_context):
        """Test a posted review reads back, links the user and counts in the summary"""
        user = await store.create_user("ignisda", "secret")
        assert user.id == 1
        async with session_scope(session_factory) as db:
            db.add(Metadata(id=10, lot=MetadataLot.BOOK, title="Project Hail Mary", specifics={"pages": 476}))
        ctx = make_context()

        posted = await schema.execute(
            """
            mutation {
              postReview(input: {userId: 1, metadataId: 10, rating: "4.5", visibility: PUBLIC, spoiler: false}) {
                id
                rating
              }
            }
            """,
            context_value=ctx,
        )
        assert posted.errors is None
        review_id = posted.data["postReview"]["id"]
        assert posted.data["postReview"]["rating"] == "4.50"

        read = await schema.execute(
            """
            query ($id: Identifier!) {
              review(reviewId: $id) { userId metadataId rating visibility spoiler text }
              hasInteracted(userId: 1, metadataId: 10)
            }
            """,
            variable_values={"id": review_id},
            context_value=ctx,
        )
        assert read.errors is None
        review = read.data["review"]
        assert (review["userId"], review["metadataId"]) == (1, 10)
        assert review["rating"] == posted.data["postReview"]["rating"]
        assert review["visibility"] == "PUBLIC"
        assert review["spoiler"] is False
        assert review["text"] is None
        assert read.data["hasInteracted"] is True
        assert await store.count_associations(1, 10) == 1

        summary = await schema.execute(
            "mutation { recomputeSummary(userId: 1) { userId booksRead booksPages moviesWatched } }",
            context_value=ctx,
        )
        assert summary.data["recomputeSummary"] == {
            "userId": 1, "booksRead": 1, "booksPages": 476, "moviesWatched": 0,
        }

        stored = await schema.execute("{ userSummary(userId: 1) { booksRead } }", context_value=ctx)
        assert stored.data["userSummary"] == {"booksRead": 1}

    async def test_update_review_changes_only_sent_fields(self, store, user, book, make_context):
        ctx = make_context()
        posted = await schema.execute(
            "mutation ($u: Identifier!, $m: Identifier!) "
            "{ postReview(input: {userId: $u, metadataId: $m, text: \"first\", spoiler: true}) { id } }",
            variable_values={"u": user.id, "m": book.id},
            context_value=ctx,
        )
        review_id = posted.data["postReview"]["id"]

        updated = await schema.execute(
            "mutation ($id: Identifier!) { updateReview(reviewId: $id, input: {text: \"second\"}) { text spoiler } }",
            variable_values={"id": review_id},
            context_value=ctx,
        )

        assert updated.data["updateReview"] == {"text": "second", "spoiler": True}

    async def test_seen_item_reads_one_record(self, user, book, make_context):
        """Test a progress record is readable by id until deleted"""
        ctx = make_context()
        created = await schema.execute(
            "mutation ($u: Identifier!, $m: Identifier!) "
            "{ progressUpdate(input: {userId: $u, metadataId: $m, progress: 40}) { id } }",
            variable_values={"u": user.id, "m": book.id},
            context_value=ctx,
        )
        seen_id = created.data["progressUpdate"]["id"]
        query = "query ($id: Identifier!) { seenItem(seenId: $id) { id progress finishedOn userId metadataId } }"

        found = await schema.execute(query, variable_values={"id": seen_id}, context_value=ctx)
        assert found.errors is None
        assert found.data["seenItem"] == {
            "id": seen_id, "progress": 40, "finishedOn": None, "userId": user.id, "metadataId": book.id,
        }

        await schema.execute(
            "mutation ($id: Identifier!) { deleteSeenItem(seenId: $id) }",
            variable_values={"id": seen_id},
            context_value=ctx,
        )
        gone = await schema.execute(query, variable_values={"id": seen_id}, context_value=ctx)
        assert gone.data["seenItem"] is None

    async def test_progress_update_with_episode(self, store, user, make_context):
        show = await store.create_metadata(MetadataLot.SHOW, "Severance", specifics={"episode_runtime": 50})
        ctx = make_context()

        for episode in (1, 2):
            result = await schema.execute(
                """
                mutation ($u: Identifier!, $m: Identifier!, $extra: JSON) {
                  progressUpdate(input: {userId: $u, metadataId: $m, extraInformation: $extra}) {
                    progress finishedOn extraInformation
                  }
                }
                """,
                variable_values={
                    "u": user.id,
                    "m": show.id,
                    "extra": {"kind": "show", "season": 1, "episode": episode},
                },
                context_value=ctx,
            )
            assert result.errors is None
            assert result.data["progressUpdate"]["progress"] == 100

        history = await schema.execute(
            "query ($u: Identifier!) { seenHistory(userId: $u) { extraInformation } }",
            variable_values={"u": user.id},
            context_value=ctx,
        )
        assert len(history.data["seenHistory"]) == 2

        summary = await schema.execute(
            "mutation ($u: Identifier!) { recomputeSummary(userId: $u) "
            "{ showsWatched showsEpisodesWatched showsSeasonsWatched showsRuntime } }",
            variable_values={"u": user.id},
            context_value=ctx,
        )
        assert summary.data["recomputeSummary"] == {
            "showsWatched": 1,
            "showsEpisodesWatched": 2,
            "showsSeasonsWatched": 1,
            "showsRuntime": 100,
        }

    async def test_delete_metadata_cascades(self, store, user, book, make_context):
        ctx = make_context()
        await schema.execute(
            "mutation ($u: Identifier!, $m: Identifier!) { postReview(input: {userId: $u, metadataId: $m}) { id } }",
            variable_values={"u": user.id, "m": book.id},
            context_value=ctx,
        )

        result = await schema.execute(
            "mutation ($m: Identifier!) { deleteMetadata(metadataId: $m) }",
            variable_values={"m": book.id},
            context_value=ctx,
        )

        assert result.data["deleteMetadata"] is True
        assert await store.list_reviews(user_id=user.id) == []
        assert not await store.has_association(user.id, book.id)


class TestDomainOperations:
    """Tests for the per-domain operation sets"""

    async def test_commit_and_list_books(self, make_context, fake_redis):
        ctx = make_context()

        committed = await schema.execute(
            'mutation { commitBook(input: {title: "Dune", publishYear: 1965, pages: 412}) { id lot specifics } }',
            context_value=ctx,
        )
        assert committed.errors is None
        item = committed.data["commitBook"]
        assert item["lot"] == "BOOK"
        assert item["specifics"] == {"pages": 412}

        listed = await schema.execute("{ bookItems { title } }", context_value=ctx)
        assert listed.data["bookItems"] == [{"title": "Dune"}]

        details = await schema.execute(
            "query ($id: Identifier!) { bookDetails(metadataId: $id) { title specifics } }",
            variable_values={"id": item["id"]},
            context_value=ctx,
        )
        assert details.data["bookDetails"] == {"title": "Dune", "specifics": {"pages": 412}}
        assert f"metadata:book:{item['id']}" in fake_redis.data

    async def test_details_without_redis(self, book, make_context):
        result = await schema.execute(
            "query ($id: Identifier!) { bookDetails(metadataId: $id) { title } }",
            variable_values={"id": book.id},
            context_value=make_context(cache=None),
        )

        assert result.data["bookDetails"] == {"title": "The Name of the Wind"}

    async def test_disabled_domain(self, make_context):
        """Test operations of a disabled domain report NotEnabled"""
        result = await schema.execute("{ movieItems { title } }", context_value=make_context())

        assert error_kinds(result) == ["NotEnabled"]

    async def test_disabled_domain_mutation(self, make_context):
        settings = Settings(app_env="testing", movies=MoviesSettings(enabled=False))

        result = await schema.execute(
            'mutation { commitMovie(input: {title: "Heat"}) { id } }',
            context_value=make_context(settings),
        )

        assert error_kinds(result) == ["NotEnabled"]


class TestUserOperations:
    """Tests for account operations"""

    async def test_register_and_rename(self, make_context):
        ctx = make_context()
        registered = await schema.execute(
            'mutation { registerUser(input: {username: "reader", password: "pw"}) { id username } }',
            context_value=ctx,
        )
        user_id = registered.data["registerUser"]["id"]

        renamed = await schema.execute(
            'mutation ($id: Identifier!) { updateUser(userId: $id, input: {username: "writer"}) { username } }',
            variable_values={"id": user_id},
            context_value=ctx,
        )

        assert renamed.data["updateUser"] == {"username": "writer"}

    async def test_rename_disabled(self, user, make_context):
        settings = Settings(app_env="testing", users=UsersSettings(allow_changing_username=False))

        result = await schema.execute(
            'mutation ($id: Identifier!) { updateUser(userId: $id, input: {username: "other"}) { username } }',
            variable_values={"id": user.id},
            context_value=make_context(settings),
        )

        assert error_kinds(result) == ["NotEnabled"]

    async def test_duplicate_username(self, user, make_context):
        result = await schema.execute(
            'mutation { registerUser(input: {username: "ignisda", password: "pw"}) { id } }',
            context_value=make_context(),
        )

        assert error_kinds(result) == ["Conflict"]

    async def test_delete_user(self, store, user, make_context):
        result = await schema.execute(
            "mutation ($id: Identifier!) { deleteUser(userId: $id) }",
            variable_values={"id": user.id},
            context_value=make_context(),
        )

        assert result.data["deleteUser"] is True
        assert await store.get_user(user.id) is None


class TestErrors:
    """Tests for error shaping"""

    async def test_missing_reference(self, book, make_context):
        result = await schema.execute(
            "mutation ($m: Identifier!) { postReview(input: {userId: 999, metadataId: $m}) { id } }",
            variable_values={"m": book.id},
            context_value=make_context(),
        )

        assert result.data is None
        assert error_kinds(result) == ["ReferenceNotFound"]

    async def test_invalid_rating(self, user, book, make_context):
        result = await schema.execute(
            "mutation ($u: Identifier!, $m: Identifier!) "
            '{ postReview(input: {userId: $u, metadataId: $m, rating: "101"}) { id } }',
            variable_values={"u": user.id, "m": book.id},
            context_value=make_context(),
        )

        assert error_kinds(result) == ["ValidationFailed"]

    async def test_unknown_user_summary(self, make_context):
        result = await schema.execute(
            "mutation { recomputeSummary(userId: 404) { booksRead } }",
            context_value=make_context(),
        )

        assert error_kinds(result) == ["ReferenceNotFound"]

    async def test_negative_identifier_rejected(self, make_context):
        result = await schema.execute(
            "query ($id: Identifier!) { userDetails(userId: $id) { id } }",
            variable_values={"id": -1},
            context_value=make_context(),
        )

        assert result.errors
        assert result.data is None

    async def test_unexpected_error_masked(self, make_context):
        """Test unexpected exceptions reach the client only as Internal"""
        operations = OperationSet("faulty")

        @operations.query
        async def explode(info: Info) -> int:
            raise RuntimeError("connection string with password")

        faulty_schema = build_schema(extra=[operations])
        result = await faulty_schema.execute("{ explode }", context_value=make_context())

        assert error_kinds(result) == ["Internal"]
        assert result.errors[0].message == MASKED_MESSAGE
