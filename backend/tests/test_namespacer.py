"""Tests for identity -> namespace mapping."""
import threading

import pytest

from app.files.exceptions import StorageUnavailable
from app.files.namespacer import Namespacer, namespace_name, sanitize


class TestSanitize:
    def test_safe_characters_kept(self):
        assert sanitize("report-v1.2_final.pdf") == "report-v1.2_final.pdf"

    def test_unsafe_characters_replaced(self):
        assert sanitize("a@b.com") == "a_b.com"
        assert sanitize("a b/c\\d") == "a_b_c_d"

    def test_each_unsafe_character_is_one_placeholder(self):
        assert sanitize("é") == "_"
        assert sanitize("a€b") == "a_b"

    def test_dot_dot_collapsed(self):
        assert sanitize("..") == "__"
        assert sanitize("../../etc/passwd") == "______etc_passwd"
        assert ".." not in sanitize("a...b")

    def test_separators_never_survive(self):
        token = sanitize("/abs/path/../x")
        assert "/" not in token
        assert ".." not in token

    def test_empty_maps_to_fallback(self):
        assert sanitize("") == "_"

    def test_single_dot_maps_to_fallback(self):
        assert sanitize(".") == "_"

    def test_all_invalid_is_non_empty(self):
        assert sanitize("@@@") == "___"

    def test_long_input_truncated(self):
        assert len(sanitize("x" * 1000)) == 200


class TestNamespaceName:
    def test_deterministic(self):
        assert namespace_name("a@b.com") == namespace_name("a@b.com")

    def test_digest_separates_sanitize_collisions(self):
        assert sanitize("a@b.com") == sanitize("a#b.com")
        assert namespace_name("a@b.com") != namespace_name("a#b.com")

    def test_without_digest_is_bare_token(self):
        assert namespace_name("a@b.com", with_digest=False) == "a_b.com"

    def test_digest_suffix_shape(self):
        token, digest = namespace_name("a@b.com").rsplit("-", 1)
        assert token == "a_b.com"
        assert len(digest) == 16
        int(digest, 16)


class TestNamespacer:
    def test_creates_directory_under_root(self, tmp_path):
        namespacer = Namespacer(tmp_path)
        ns = namespacer.namespace_for("a@b.com")
        assert ns.path.is_dir()
        assert ns.path.parent == tmp_path.resolve()

    def test_distinct_identities_distinct_namespaces(self, tmp_path):
        namespacer = Namespacer(tmp_path)
        a = namespacer.namespace_for("a@b.com")
        c = namespacer.namespace_for("c@d.com")
        assert a.path != c.path
        assert a.path.parent == c.path.parent == tmp_path.resolve()

    def test_same_identity_same_namespace(self, tmp_path):
        namespacer = Namespacer(tmp_path)
        assert namespacer.namespace_for("x") == namespacer.namespace_for("x")

    @pytest.mark.parametrize("identity", ["", ".", "..", "../..", "/", "/etc"])
    def test_hostile_identities_stay_below_root(self, tmp_path, identity):
        namespacer = Namespacer(tmp_path, with_digest=False)
        ns = namespacer.namespace_for(identity)
        assert ns.path.parent == tmp_path.resolve()
        assert ns.path != tmp_path.resolve()

    def test_existing_directory_is_not_an_error(self, tmp_path):
        Namespacer(tmp_path).namespace_for("a@b.com")
        ns = Namespacer(tmp_path).namespace_for("a@b.com")
        assert ns.path.is_dir()

    def test_recreated_after_external_removal(self, tmp_path):
        namespacer = Namespacer(tmp_path)
        ns = namespacer.namespace_for("a@b.com")
        ns.path.rmdir()
        assert namespacer.namespace_for("a@b.com").path.is_dir()

    def test_concurrent_first_access(self, tmp_path):
        namespacer = Namespacer(tmp_path)
        results, errors = [], []

        def worker():
            try:
                results.append(namespacer.namespace_for("a@b.com"))
            except Exception as e:  # pragma: no cover - reported below
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(set(results)) == 1

    def test_unwritable_namespace_raises_storage_unavailable(self, tmp_path):
        namespacer = Namespacer(tmp_path, with_digest=False)
        # A regular file where the namespace directory should be.
        (tmp_path / "a_b.com").write_bytes(b"")
        with pytest.raises(StorageUnavailable):
            namespacer.namespace_for("a@b.com")

    def test_root_that_is_a_file_raises_storage_unavailable(self, tmp_path):
        root = tmp_path / "root"
        root.write_bytes(b"")
        with pytest.raises(StorageUnavailable):
            Namespacer(root).ensure_root()

    def test_namespace_symlinked_outside_root_rejected(self, tmp_path):
        root = tmp_path / "root"
        root.mkdir()
        outside = tmp_path / "outside"
        outside.mkdir()
        (root / "a_b.com").symlink_to(outside, target_is_directory=True)
        with pytest.raises(StorageUnavailable):
            Namespacer(root, with_digest=False).namespace_for("a@b.com")
