from collections import namedtuple
from functools import lru_cache

from enigma_cracker.alphabet import ALPHABET, CHARSET_SIZE, c2n, n2c, to_permutation, invert
from enigma_cracker.errors import ConfigurationError


ILLEGAL_LOC = 27

RotorSpec = namedtuple("RotorSpec", ["name", "wiring", "notches"])

ROTOR_SPECS = (
  RotorSpec("I",    "EKMFLGDQVZNTOWYHXUSPAIBRCJ", (ILLEGAL_LOC, 16)),
  RotorSpec("II",   "AJDKSIRUXBLHWTMCQGZNPYFVOE", (ILLEGAL_LOC, 4)),
  RotorSpec("III",  "BDFHJLCPRTXVZNYEIWGAKMUSQO", (ILLEGAL_LOC, 21)),
  RotorSpec("IV",   "ESOVPZJAYQUIRHXLNFTGKDCMWB", (ILLEGAL_LOC, 9)),
  RotorSpec("V",    "VZBRGITYUPSDNHLXAWMJQOFECK", (ILLEGAL_LOC, 25)),
  RotorSpec("VI",   "JPGVOUMFYQBENHZRDKASXLICTW", (12, 25)),
  RotorSpec("VII",  "NZJHGRCXMYSWBOUFAIVLPEKQDT", (12, 25)),
  RotorSpec("VIII", "FKQHTLXOCBJSPDZRAMEWNIUYGV", (12, 25)),
)

ROTOR_NAMES = tuple(spec.name for spec in ROTOR_SPECS)

REFLECTORS = {
  "B": "YRUHQSLDPXNGOKMIEBFZCWVJAT",
  "C": "FVPJIAOYEDRZXWGCTKUQSBNMHL",
}
FALLBACK_REFLECTOR = ALPHABET[::-1]


@lru_cache(maxsize=None)
def wiring_tables(index):
  forward_mapping = to_permutation(ROTOR_SPECS[index].wiring)
  return forward_mapping, invert(forward_mapping)


def check_letter_value(value, what):
  if not isinstance(value, int) or not 0 <= value < CHARSET_SIZE:
    raise ConfigurationError("%s must be between 0 and 25, got %r" % (what, value))
  return value


def rotor_index(rotor):
  """Accept a rotor index 0-7 or its name I-VIII."""
  if isinstance(rotor, str):
    try:
      return ROTOR_NAMES.index(rotor.strip().upper())
    except ValueError:
      raise ConfigurationError("Unknown rotor %r, expected one of %s" % (rotor, " ".join(ROTOR_NAMES)))
  if not isinstance(rotor, int) or not 0 <= rotor < len(ROTOR_SPECS):
    raise ConfigurationError("Rotor index must be between 0 and %d, got %r" % (len(ROTOR_SPECS) - 1, rotor))
  return rotor


def split_pairs(pairs):
  """Normalise "AB CD", ["AB", "CD"], [("A", "B")] or {"A": "B"} into letter tuples."""
  if pairs is None:
    return []
  if isinstance(pairs, str):
    pairs = pairs.split()
  elif isinstance(pairs, dict):
    pairs = pairs.items()
  result = []
  for pair in pairs:
    if len(pair) != 2:
      raise ConfigurationError("Plugboard pair %r must be exactly 2 letters" % (pair,))
    a, b = pair
    a, b = a.upper(), b.upper()
    for letter in (a, b):
      if letter not in ALPHABET:
        raise ConfigurationError("Invalid plugboard letter %r" % (letter,))
    result.append((a, b))
  return result


class Rotor:
  def __init__(self, index, position, setting):
    self.index = rotor_index(index)
    self.notches = ROTOR_SPECS[self.index].notches
    self.position = check_letter_value(position, "Rotor position")
    self.setting = check_letter_value(setting, "Ring setting")
    self.forward_mapping, self.reverse_mapping = wiring_tables(self.index)

  def at_notch(self):
    return self.position in self.notches

  def turnover(self):
    self.position = (self.position + 1) % CHARSET_SIZE

  def forward(self, num):
    shift_add = CHARSET_SIZE + self.position - self.setting
    shift_sub = CHARSET_SIZE - self.position + self.setting
    return (self.forward_mapping[(num + shift_add) % CHARSET_SIZE] + shift_sub) % CHARSET_SIZE

  def backward(self, num):
    shift_add = CHARSET_SIZE + self.position - self.setting
    shift_sub = CHARSET_SIZE - self.position + self.setting
    return (self.reverse_mapping[(num + shift_add) % CHARSET_SIZE] + shift_sub) % CHARSET_SIZE

  def __repr__(self):
    return "<Rotor %s pos=%d ring=%d>" % (ROTOR_NAMES[self.index], self.position, self.setting)


class Reflector:
  def __init__(self, letterid):
    self.letterid = letterid
    self.mapping = to_permutation(REFLECTORS.get(letterid, FALLBACK_REFLECTOR))

  def forward(self, num):
    return self.mapping[num]

  def __repr__(self):
    return "<Reflector %s>" % self.letterid


class Plugboard:
  def __init__(self, pairs=None):
    self.pairs = split_pairs(pairs)
    self.mapping = list(range(CHARSET_SIZE))
    # overlapping pairs are not rejected, the last one written wins
    for a, b in self.pairs:
      self.mapping[c2n(a)] = c2n(b)
      self.mapping[c2n(b)] = c2n(a)

  def forward(self, num):
    return self.mapping[num]

  def __repr__(self):
    return "<Plugboard %s>" % " ".join(a + b for a, b in self.pairs)


class Enigma:
  def __init__(self, rotor_indexes, rotor_positions, rotor_settings, plugboard_mappings=None, reflector_letterid="B"):
    for name, values in (("rotors", rotor_indexes), ("positions", rotor_positions), ("ring settings", rotor_settings)):
      if len(values) != 3:
        raise ConfigurationError("Expected 3 %s, got %r" % (name, values))
    self.plugboard = Plugboard(plugboard_mappings)
    self.left_rotor, self.middle_rotor, self.right_rotor = (
      Rotor(rotor_index(i), p, s) for i, p, s in zip(rotor_indexes, rotor_positions, rotor_settings))
    self.reflector = Reflector(reflector_letterid)

  @classmethod
  def from_key_sheet(cls, rotors, reflector="B", ring_settings=(0, 0, 0), plugboard_settings="", key="AAA"):
    if isinstance(rotors, str):
      rotors = rotors.split()
    if isinstance(key, str):
      key = [c2n(c) for c in key.upper()]
    return cls([rotor_index(r) for r in rotors], list(key), list(ring_settings), plugboard_settings, reflector)

  @property
  def positions(self):
    return (self.left_rotor.position, self.middle_rotor.position, self.right_rotor.position)

  def rotate(self):
    # the middle rotor checks its own notch before the right rotor moves: double stepping
    if self.middle_rotor.at_notch():
      self.middle_rotor.turnover()
      self.left_rotor.turnover()
    elif self.right_rotor.at_notch():
      self.middle_rotor.turnover()

    self.right_rotor.turnover()

  def encrypt_one(self, c):
    self.rotate()

    num = self.plugboard.forward(c2n(c))

    num = self.right_rotor.forward(num)
    num = self.middle_rotor.forward(num)
    num = self.left_rotor.forward(num)

    num = self.reflector.forward(num)

    num = self.left_rotor.backward(num)
    num = self.middle_rotor.backward(num)
    num = self.right_rotor.backward(num)

    return n2c(self.plugboard.forward(num))

  def Process(self, text):
    return "".join(self.encrypt_one(c) for c in text)


def cipher_string(text, rotors, settings, mappings, positions=(1, 1, 1), reflector="B"):
  """Run text through a freshly built machine."""
  return Enigma(rotors, positions, settings, mappings, reflector).Process(text)
