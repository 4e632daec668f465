import string

import pytest

from ciphercraft.cipher_engine import (
    CIPHER_ALPHABET,
    SubstitutionCipher,
    cipher,
    decrypt,
    encrypt,
)


def test_known_mapping():
    assert encrypt("HELLO, WORLD! 123") == "ITSSG, VGKSR! 123"
    assert decrypt("ITSSG, VGKSR! 123") == "HELLO, WORLD! 123"


def test_table_is_bijective():
    assert cipher.check_bijective()
    assert len(set(cipher.forward_map.values())) == 26
    for letter in string.ascii_uppercase:
        assert cipher.reverse_map[cipher.forward_map[letter]] == letter


@pytest.mark.parametrize("letter", list(string.ascii_uppercase))
def test_every_letter_round_trips(letter):
    assert decrypt(encrypt(letter)) == letter


def test_empty_string():
    assert encrypt("") == ""
    assert decrypt("") == ""


def test_lowercase_is_normalized():
    assert encrypt("hello") == encrypt("HELLO")
    assert decrypt("itssg") == "HELLO"


def test_non_letters_pass_through():
    text = "0123456789 !?.,;:-_\t\n@#é"
    assert encrypt(text) == text.upper()
    assert decrypt(text) == text.upper()


def test_case_is_lost_on_round_trip():
    assert decrypt(encrypt("Attack at Dawn!")) == "ATTACK AT DAWN!"


def test_maps_are_read_only():
    with pytest.raises(TypeError):
        cipher.forward_map["A"] = "B"
    with pytest.raises(TypeError):
        cipher.reverse_map["Q"] = "B"


def test_default_alphabet():
    assert "".join(cipher.forward_map[c] for c in string.ascii_uppercase) == CIPHER_ALPHABET


@pytest.mark.parametrize("alphabet", ["ABC", "A" * 26, CIPHER_ALPHABET[:-1] + "1"])
def test_rejects_non_permutation(alphabet):
    with pytest.raises(ValueError):
        SubstitutionCipher(alphabet)


def test_custom_alphabet():
    reversed_alphabet = SubstitutionCipher(string.ascii_uppercase[::-1])
    assert reversed_alphabet.encrypt("abc xyz") == "ZYX CBA"
    assert reversed_alphabet.decrypt("ZYX CBA") == "ABC XYZ"
