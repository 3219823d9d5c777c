import heapq
import itertools
import logging
from dataclasses import dataclass, field

from enigma_cracker.machine import ROTOR_NAMES


log = logging.getLogger("enigma_cracker")


@dataclass(frozen=True)
class Candidate:
  """One guess at the machine settings together with its IoC score."""

  rotors: tuple
  settings: tuple
  plugboard: tuple = ()
  score: int = 0

  @property
  def used_letters(self):
    return set(self.mappings)

  @property
  def mappings(self):
    mapping = {}
    for a, b in self.plugboard:
      mapping[a] = b
      mapping[b] = a
    return mapping

  @property
  def plugboard_settings(self):
    return " ".join(self.plugboard)

  def with_plug(self, pair, score):
    return Candidate(self.rotors, self.settings, self.plugboard + (pair,), score)

  def as_configuration(self, key, reflector):
    return {
      "Rotors": " ".join(ROTOR_NAMES[i] for i in self.rotors),
      "Reflector": reflector,
      "Ring": list(self.settings),
      "Plugboard": self.plugboard_settings,
      "Key": key,
      "Score": self.score,
    }


@dataclass
class TopResults:
  """Keeps the top_n best scoring candidates. Not safe to share between workers."""

  top_n: int = 5
  silent: bool = False
  _heap: list = field(default_factory=list)
  _counter: itertools.count = field(default_factory=itertools.count)

  def add(self, candidate):
    score = candidate.score
    heapq.heappush(self._heap, (score, next(self._counter), candidate))

    if len(self._heap) > self.top_n:
      popped, _, _ = heapq.heappop(self._heap)
      if popped != score and not self.silent:
        log.info("New top score %d", score)

  def __len__(self):
    return len(self._heap)

  def sorted(self):
    """Best first."""
    return [c for _, _, c in sorted(self._heap, key=lambda entry: (-entry[0], entry[1]))]

  def best(self):
    return self.sorted()[0] if self._heap else None
