from relaychat.crypto.passwords import SCHEME, hash_password, verify_password


def test_hash_verifies_only_the_right_secret():
    stored = hash_password("s3cret", iterations=1000)
    assert stored.startswith(SCHEME + "$1000$")
    assert verify_password("s3cret", stored)
    assert not verify_password("s3cret ", stored)
    assert not verify_password("", stored)


def test_hash_is_salted():
    assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)


def test_plaintext_never_appears_in_hash():
    assert "hunter2" not in hash_password("hunter2", iterations=1000)


def test_malformed_hashes_do_not_verify():
    for stored in ["", "garbage", "pbkdf2_sha256$x$y$z", "bcrypt$1000$AAAA$AAAA",
                   "pbkdf2_sha256$1000$!!!$???"]:
        assert not verify_password("anything", stored)
