import string
from types import MappingProxyType
from typing import Mapping

PLAIN_ALPHABET = string.ascii_uppercase
# QWERTY keyboard order: A->Q, B->W, C->E, ... Z->M
CIPHER_ALPHABET = "QWERTYUIOPASDFGHJKLZXCVBNM"


class SubstitutionCipher:
    """
    Fixed monoalphabetic substitution over A-Z.
    Input is uppercased first; anything outside A-Z passes through unchanged.
    """

    def __init__(self, cipher_alphabet: str = CIPHER_ALPHABET):
        if len(cipher_alphabet) != len(PLAIN_ALPHABET):
            raise ValueError("Cipher alphabet must have 26 letters")

        forward = dict(zip(PLAIN_ALPHABET, cipher_alphabet))
        reverse = self._generate_reverse_map(forward)
        if not self._is_bijective(forward, reverse):
            raise ValueError("Cipher alphabet must be a permutation of A-Z")

        self._forward = MappingProxyType(forward)
        self._reverse = MappingProxyType(reverse)

        # str.translate tables, keyed by code point
        self._encrypt_table = str.maketrans(forward)
        self._decrypt_table = str.maketrans(reverse)

    @staticmethod
    def _generate_reverse_map(forward: Mapping[str, str]) -> dict:
        return {v: k for k, v in forward.items()}

    @staticmethod
    def _is_bijective(forward: Mapping[str, str], reverse: Mapping[str, str]) -> bool:
        return (
            set(forward) == set(PLAIN_ALPHABET)
            and set(forward.values()) == set(PLAIN_ALPHABET)
            and all(reverse[v] == k for k, v in forward.items())
        )

    @property
    def forward_map(self) -> Mapping[str, str]:
        return self._forward

    @property
    def reverse_map(self) -> Mapping[str, str]:
        return self._reverse

    def check_bijective(self) -> bool:
        return self._is_bijective(self._forward, self._reverse)

    def encrypt(self, text: str) -> str:
        return text.upper().translate(self._encrypt_table)

    def decrypt(self, text: str) -> str:
        return text.upper().translate(self._decrypt_table)


cipher = SubstitutionCipher()


def encrypt(text: str) -> str:
    return cipher.encrypt(text)


def decrypt(text: str) -> str:
    return cipher.decrypt(text)
