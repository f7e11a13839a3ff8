"""Tests for promptcanvas.core.image_store — SQLite record store."""

from __future__ import annotations

import sqlite3

import pytest

from promptcanvas.core.errors import ImageNotFoundError, ImageStoreError
from promptcanvas.core.image_store import GeneratedImage, ImageStore

USER = "00000000-0000-0000-0000-000000000000"


class TestCreate:
    def test_defaults(self, image_store: ImageStore):
        image = image_store.create_image("  a fox  ", "https://x/fox.png", USER)

        assert isinstance(image, GeneratedImage)
        assert image.prompt == "a fox"
        assert image.liked is False
        assert image.id
        assert image.created_at == image.updated_at

    def test_ids_are_unique(self, image_store: ImageStore):
        first = image_store.create_image("a", "https://x/a.png", USER)
        second = image_store.create_image("b", "https://x/b.png", USER)
        assert first.id != second.id

    @pytest.mark.parametrize("prompt,url", [("", "https://x"), ("   ", "https://x"), ("a", "")])
    def test_required_fields(self, image_store: ImageStore, prompt, url):
        with pytest.raises(ValueError):
            image_store.create_image(prompt, url, USER)

    def test_data_uri_is_accepted(self, image_store: ImageStore):
        uri = "data:image/jpeg;base64,/9j/4AAQ"
        image = image_store.create_image("inline", uri, USER)
        assert image_store.get_image(image.id).image_url == uri


class TestList:
    def test_newest_first(self, image_store: ImageStore):
        ids = [image_store.create_image(f"p{i}", f"https://x/{i}", USER).id for i in range(3)]
        assert [image.id for image in image_store.list_images()] == list(reversed(ids))

    def test_filter_by_user(self, image_store: ImageStore):
        image_store.create_image("mine", "https://x/1", USER)
        image_store.create_image("theirs", "https://x/2", "someone-else")

        prompts = [image.prompt for image in image_store.list_images(user_id=USER)]
        assert prompts == ["mine"]

    def test_empty(self, image_store: ImageStore):
        assert image_store.list_images() == []


class TestLiked:
    def test_set_liked(self, image_store: ImageStore):
        image = image_store.create_image("a", "https://x/a", USER)
        updated = image_store.set_liked(image.id, True)

        assert updated.liked is True
        assert updated.updated_at >= image.updated_at
        assert image_store.get_image(image.id).liked is True

    def test_toggle_twice_restores_original(self, image_store: ImageStore):
        image = image_store.create_image("a", "https://x/a", USER)

        once = image_store.toggle_liked(image.id)
        twice = image_store.toggle_liked(image.id)

        assert once.liked is True
        assert twice.liked is image.liked

    def test_unknown_id(self, image_store: ImageStore):
        with pytest.raises(ImageNotFoundError):
            image_store.set_liked("missing", True)
        with pytest.raises(ImageNotFoundError):
            image_store.toggle_liked("missing")


class TestDelete:
    def test_delete_returns_record(self, image_store: ImageStore):
        image = image_store.create_image("a", "https://x/a", USER)

        deleted = image_store.delete_image(image.id)

        assert deleted.id == image.id
        with pytest.raises(ImageNotFoundError):
            image_store.get_image(image.id)

    def test_delete_unknown_id(self, image_store: ImageStore):
        with pytest.raises(ImageNotFoundError):
            image_store.delete_image("missing")

    def test_not_found_is_a_store_error(self):
        assert issubclass(ImageNotFoundError, ImageStoreError)


class TestFailures:
    def test_sqlite_errors_are_wrapped(self, image_store: ImageStore):
        with sqlite3.connect(image_store.db_path) as conn:
            conn.execute("DROP TABLE generated_images")

        with pytest.raises(ImageStoreError):
            image_store.list_images()

    def test_persistence_across_instances(self, image_store: ImageStore):
        image = image_store.create_image("kept", "https://x/k", USER)
        reopened = ImageStore(image_store.db_path)
        assert reopened.get_image(image.id).prompt == "kept"
