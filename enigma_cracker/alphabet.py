ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
CHARSET_SIZE = 26
BASE_CHAR = ord("A")


def c2n(character):
  return ord(character) - BASE_CHAR


def n2c(number):
  return chr(number + BASE_CHAR)


def to_permutation(wiring):
  return [c2n(c) for c in wiring]


def invert(permutation):
  # inv[p[i]] == i for every i
  inverse = [0]*CHARSET_SIZE
  for i, n in enumerate(permutation):
    inverse[n] = i
  return inverse
