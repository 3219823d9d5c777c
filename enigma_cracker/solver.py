import functools
import itertools
import logging
import multiprocessing
from contextlib import contextmanager
from dataclasses import dataclass, field

import progressbar

from enigma_cracker.alphabet import ALPHABET, CHARSET_SIZE
from enigma_cracker.errors import ConfigurationError
from enigma_cracker.machine import ROTOR_SPECS, check_letter_value, cipher_string
from enigma_cracker.results import Candidate, TopResults
from enigma_cracker.scoring import ioc


log = logging.getLogger("enigma_cracker")

INIT_POSITIONS = (1, 1, 1)
STORE_TOP_RESULTS = 5
DEFAULT_REFLECTOR = "B"
EARLY_EXIT_SCORE = 1600
MAX_WIRES = CHARSET_SIZE // 2


@dataclass(slots=True)
class SolverConfig:
  """Knobs for decipher(). Only `silent` has no effect on the result."""

  number_of_rotors: int = len(ROTOR_SPECS)
  number_of_wires: int = 0
  top_n: int = STORE_TOP_RESULTS
  initial_positions: tuple = INIT_POSITIONS
  reflector: str = DEFAULT_REFLECTOR
  early_exit_score: int | None = EARLY_EXIT_SCORE
  workers: int | None = 1
  chunksize: int = 256
  silent: bool = False

  @classmethod
  def from_model(cls, model, **overrides):
    keys = {"Rotors": "number_of_rotors", "Wires": "number_of_wires", "Top": "top_n",
            "Positions": "initial_positions", "Reflector": "reflector",
            "EarlyExit": "early_exit_score", "Workers": "workers"}
    unknown = set(model) - set(keys)
    if unknown:
      raise ConfigurationError("Unknown model keys: %s" % ", ".join(sorted(unknown)))
    values = {keys[k]: v for k, v in model.items()}
    if "initial_positions" in values:
      if not isinstance(values["initial_positions"], (list, tuple)):
        raise ConfigurationError("Positions must be a list of 3 numbers, got %r" % (values["initial_positions"],))
      values["initial_positions"] = tuple(values["initial_positions"])
    values.update(overrides)
    return cls(**values)

  def validate(self):
    for name in ("number_of_rotors", "number_of_wires", "top_n", "workers"):
      value = getattr(self, name)
      if name == "workers" and value is None:
        continue
      if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError("%s must be a whole number, got %r" % (name, value))
    if self.early_exit_score is not None and (isinstance(self.early_exit_score, bool) or not isinstance(self.early_exit_score, (int, float))):
      raise ConfigurationError("early_exit_score must be a number or null, got %r" % (self.early_exit_score,))
    if not 3 <= self.number_of_rotors <= len(ROTOR_SPECS):
      raise ConfigurationError("Number of rotors must be between 3 and %d, got %r" % (len(ROTOR_SPECS), self.number_of_rotors))
    if not 0 <= self.number_of_wires <= MAX_WIRES:
      raise ConfigurationError("Number of wires must be between 0 and %d, got %r" % (MAX_WIRES, self.number_of_wires))
    if self.top_n < 1:
      raise ConfigurationError("Top results must be at least 1, got %r" % self.top_n)
    if len(self.initial_positions) != 3:
      raise ConfigurationError("Expected 3 initial positions, got %r" % (self.initial_positions,))
    for position in self.initial_positions:
      check_letter_value(position, "Rotor position")
    if self.workers is not None and self.workers < 1:
      raise ConfigurationError("Workers must be at least 1, got %r" % self.workers)
    return self


@dataclass
class Solution:
  candidate: Candidate
  plaintext: str
  initial_score: int
  phase_one: list = field(default_factory=list)

  @property
  def plugboard_improved(self):
    """False when phase 2 kept the phase 1 candidate untouched."""
    return bool(self.candidate.plugboard)


# General function to choose 3 from n with or without replacement.
def n_choose_three(n, repeat):
  configs = []
  for i in range(n):
    for j in range(n):
      if not repeat and i == j:
        continue
      for k in range(n):
        if not repeat and (k == j or k == i):
          continue
        configs.append((i, j, k))
  return configs


# There are 8 rotors to choose 3 from with no repeats.
def rotor_configs(number_of_rotors):
  return n_choose_three(number_of_rotors, False)


# There are 26 ring positions to choose three from with repeats allowed.
def rotor_settings():
  return n_choose_three(CHARSET_SIZE, True)


def score_configuration(configuration, ciphertext, positions, reflector):
  rotors, settings = configuration
  plaintext = cipher_string(ciphertext, rotors, settings, (), positions, reflector)
  return Candidate(tuple(rotors), tuple(settings), (), ioc(plaintext))


def score_plugwire(pair, ciphertext, conf, positions, reflector):
  plaintext = cipher_string(ciphertext, conf.rotors, conf.settings, conf.plugboard + (pair,), positions, reflector)
  return ioc(plaintext)


def free_pairs(conf):
  used = conf.used_letters
  for i, char1 in enumerate(ALPHABET):
    if char1 in used:
      continue
    for char2 in ALPHABET[i + 1:]:
      if char2 not in used:
        yield char1 + char2


@contextmanager
def worker_pool(workers, chunksize):
  """Yields an ordered map; workers=1 stays in this process."""
  if workers == 1:
    yield map
    return
  with multiprocessing.Pool(workers) as pool:
    yield functools.partial(pool.imap, chunksize=chunksize)


def new_bar(max_value, silent):
  if silent:
    return progressbar.NullBar(max_value=max_value)
  return progressbar.ProgressBar(max_value=max_value)


def rotor_coincidence_attack(ciphertext, config, ring_settings=None, mapper=map):
  """Phase 1: score every rotor order and ring setting with an empty plugboard."""
  possible_rotor_configs = rotor_configs(config.number_of_rotors)
  possible_rotor_settings = rotor_settings() if ring_settings is None else [tuple(s) for s in ring_settings]
  if not possible_rotor_settings:
    raise ConfigurationError("No ring settings to try")
  for setting in possible_rotor_settings:
    for value in setting:
      check_letter_value(value, "Ring setting")

  res = TopResults(config.top_n, config.silent)
  evaluate = functools.partial(score_configuration, ciphertext=ciphertext,
                               positions=config.initial_positions, reflector=config.reflector)
  nbpos = len(possible_rotor_configs)*len(possible_rotor_settings)
  if not config.silent:
    log.info("Trying %d rotor orders with %d ring settings each", len(possible_rotor_configs), len(possible_rotor_settings))

  bar = new_bar(nbpos, config.silent)
  configurations = itertools.product(possible_rotor_configs, possible_rotor_settings)
  for i, candidate in enumerate(mapper(evaluate, configurations)):
    res.add(candidate)
    bar.update(i + 1)
  bar.finish()
  return res


def add_best_plugwire(ciphertext, conf, config, mapper=map):
  """Returns the best strictly improving one-wire extension of conf, or None."""
  pairs = list(free_pairs(conf))
  evaluate = functools.partial(score_plugwire, ciphertext=ciphertext, conf=conf,
                               positions=config.initial_positions, reflector=config.reflector)

  max_score = conf.score
  best_conf = None
  for pair, score in zip(pairs, mapper(evaluate, pairs)):
    if score > max_score:
      if not config.silent:
        log.info("New max score %d after [%s:%s]", score, pair[0], pair[1])
      max_score = score
      best_conf = conf.with_plug(pair, score)
  return best_conf


def solve_plugboard(conf, ciphertext, config, mapper=map):
  """Phase 2: greedily add one wire per round, up to number_of_wires."""
  best_guess = conf
  for _ in range(config.number_of_wires):
    x = add_best_plugwire(ciphertext, best_guess, config, mapper)
    if x is None:
      # local optimum, later rounds would see the same candidate
      if not config.silent:
        log.info("No improving wire for rotors %s, settings %s", best_guess.rotors, best_guess.settings)
      break
    best_guess = x
    if config.early_exit_score is not None and x.score > config.early_exit_score:
      break
  return best_guess


# Returns the best guess for deciphering the given ciphertext.
# The starting position of the rotors is assumed to be config.initial_positions;
# on a real Enigma it was sent enciphered in the message indicator.
#
# https://en.wikipedia.org/wiki/Enigma_machine#Indicator
def decipher(ciphertext, config=None, ring_settings=None):
  config = (config or SolverConfig()).validate()
  initial_score = ioc(ciphertext)
  if not config.silent:
    log.info("Initial IOC: %d", initial_score)

  with worker_pool(config.workers, config.chunksize) as mapper:
    top_results = rotor_coincidence_attack(ciphertext, config, ring_settings, mapper).sorted()

    best = top_results[0]
    if not config.silent:
      log.info("Best parameters so far: rotors: %s, settings: %s, score: %d", best.rotors, best.settings, best.score)
      log.info("Deciphering substitutions")

    results_after_plugboards = []
    bar = new_bar(len(top_results), config.silent)
    for i, top_result in enumerate(top_results):
      results_after_plugboards.append(solve_plugboard(top_result, ciphertext, config, mapper))
      bar.update(i + 1)
    bar.finish()

  top = max(results_after_plugboards, key=lambda c: c.score)
  plaintext = cipher_string(ciphertext, top.rotors, top.settings, top.plugboard, config.initial_positions, config.reflector)
  return Solution(top, plaintext, initial_score, top_results)
