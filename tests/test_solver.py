import itertools
import re
import unittest as ut

from enigma_cracker.errors import ConfigurationError, DegenerateTextError
from enigma_cracker.machine import cipher_string
from enigma_cracker.results import Candidate
from enigma_cracker.scoring import ioc
from enigma_cracker.solver import (
  SolverConfig, add_best_plugwire, decipher, free_pairs, n_choose_three, rotor_configs,
  rotor_coincidence_attack, rotor_settings, solve_plugboard)


MESSAGE = """
The weather report from the northern coast arrived late again this morning. Heavy
rain is expected over the harbour for the next three days and the wind will turn
to the west by the evening. All ships in the second convoy are ordered to remain in
port until the storm has passed. The commander requests that every station confirm
the new orders before noon and report any damage to the radio equipment at once.
Supplies of fuel and food for the garrison will be sent by train on the first dry
day, and the officers of the signal company are to meet at the town hall after the
evening meal to discuss the changes to the daily keys.
"""
PLAINTEXT = re.sub("[^a-zA-Z]+", "", MESSAGE).upper()

ROTORS = (2, 0, 1)
SETTINGS = (0, 7, 19)
PLUGS = ("BQ", "HX")
CIPHERTEXT = cipher_string(PLAINTEXT, ROTORS, SETTINGS, PLUGS)

# left ring fixed, middle and right searched
RING_SETTINGS = [(0, m, r) for m, r in itertools.product(range(26), repeat=2)]


def quiet(**kwargs):
  return SolverConfig(silent=True, **kwargs)


class EnumerationTest(ut.TestCase):
  def test_rotor_configs(self):
    configs = rotor_configs(8)
    self.assertEqual(len(configs), 336)
    self.assertEqual(configs[0], (0, 1, 2))
    for config in configs:
      self.assertEqual(len(set(config)), 3)
    self.assertEqual(len(rotor_configs(3)), 6)

  def test_rotor_settings(self):
    settings = rotor_settings()
    self.assertEqual(len(settings), 26**3)
    self.assertEqual(settings[0], (0, 0, 0))
    self.assertEqual(settings[-1], (25, 25, 25))

  def test_n_choose_three_with_repeats(self):
    self.assertEqual(n_choose_three(2, True), list(itertools.product(range(2), repeat=3)))

  def test_free_pairs_in_order(self):
    pairs = list(free_pairs(Candidate((0, 1, 2), (0, 0, 0), ("AB",), 0)))
    self.assertEqual(len(pairs), 24*23//2)
    self.assertEqual(pairs[:2], ["CD", "CE"])
    self.assertEqual(pairs[-1], "YZ")
    self.assertEqual(pairs, sorted(pairs))


class SolverConfigTest(ut.TestCase):
  def test_defaults(self):
    config = SolverConfig().validate()
    self.assertEqual(config.number_of_rotors, 8)
    self.assertEqual(config.number_of_wires, 0)
    self.assertEqual(config.top_n, 5)
    self.assertEqual(config.initial_positions, (1, 1, 1))
    self.assertEqual(config.early_exit_score, 1600)

  def test_invalid(self):
    for kwargs in [{"number_of_rotors": 2}, {"number_of_rotors": 9}, {"number_of_wires": -1},
                   {"number_of_wires": 14}, {"top_n": 0}, {"initial_positions": (1, 1, 26)},
                   {"initial_positions": (1, 1)}, {"workers": 0}, {"number_of_rotors": "5"},
                   {"number_of_wires": 1.5}, {"top_n": 2.0}, {"workers": "2"}, {"number_of_wires": True},
                   {"early_exit_score": "1600"}]:
      with self.assertRaises(ConfigurationError):
        SolverConfig(**kwargs).validate()

  def test_from_model(self):
    config = SolverConfig.from_model({"Rotors": 5, "Wires": 3, "Positions": [0, 0, 0]}, top_n=2)
    self.assertEqual(config.number_of_rotors, 5)
    self.assertEqual(config.number_of_wires, 3)
    self.assertEqual(config.initial_positions, (0, 0, 0))
    self.assertEqual(config.top_n, 2)
    with self.assertRaises(ConfigurationError):
      SolverConfig.from_model({"Rotor": 5})

  def test_bad_configuration_fails_before_search(self):
    with self.assertRaises(ConfigurationError):
      decipher(CIPHERTEXT, quiet(number_of_rotors=2))
    with self.assertRaises(DegenerateTextError):
      decipher("A", quiet(number_of_rotors=3))

  def test_fractional_wires_fail_before_search(self):
    config = SolverConfig.from_model({"Rotors": 3, "Wires": 1.5}, silent=True)
    with self.assertRaises(ConfigurationError):
      decipher(CIPHERTEXT, config, RING_SETTINGS)
    with self.assertRaises(ConfigurationError):
      SolverConfig.from_model({"Positions": 1})


class RotorSearchTest(ut.TestCase):
  def test_finds_rotors_and_rings(self):
    res = rotor_coincidence_attack(CIPHERTEXT, quiet(number_of_rotors=3), RING_SETTINGS)
    self.assertEqual(len(res), 5)
    best = res.best()
    self.assertEqual(best.rotors, ROTORS)
    self.assertEqual(best.settings, SETTINGS)
    self.assertEqual(best.plugboard, ())
    self.assertEqual(best.score, ioc(cipher_string(CIPHERTEXT, ROTORS, SETTINGS, ())))

  def test_rejects_bad_ring_settings(self):
    with self.assertRaises(ConfigurationError):
      rotor_coincidence_attack(CIPHERTEXT, quiet(number_of_rotors=3), [(0, 0, 26)])

  def test_rejects_empty_ring_settings(self):
    with self.assertRaises(ConfigurationError):
      rotor_coincidence_attack(CIPHERTEXT, quiet(number_of_rotors=3), [])
    with self.assertRaises(ConfigurationError):
      decipher("ABCDEFGHAB", quiet(number_of_rotors=3), [])


class PlugboardSearchTest(ut.TestCase):
  def setUp(self):
    self.start = Candidate(ROTORS, SETTINGS, (), ioc(cipher_string(CIPHERTEXT, ROTORS, SETTINGS, ())))

  def test_add_best_plugwire_improves(self):
    conf = add_best_plugwire(CIPHERTEXT, self.start, quiet())
    self.assertGreater(conf.score, self.start.score)
    self.assertEqual(len(conf.plugboard), 1)
    self.assertIn(conf.plugboard[0], PLUGS)
    self.assertEqual(conf.score, ioc(cipher_string(CIPHERTEXT, ROTORS, SETTINGS, conf.plugboard)))

  def test_recovers_plugboard(self):
    conf = solve_plugboard(self.start, CIPHERTEXT, quiet(number_of_wires=2, early_exit_score=None))
    self.assertEqual(set(conf.plugboard), set(PLUGS))
    self.assertEqual(cipher_string(CIPHERTEXT, conf.rotors, conf.settings, conf.plugboard), PLAINTEXT)

  def test_zero_wires_returns_input(self):
    self.assertIs(solve_plugboard(self.start, CIPHERTEXT, quiet(number_of_wires=0)), self.start)

  def test_no_improvement_is_a_no_op(self):
    unbeatable = Candidate(ROTORS, SETTINGS, (), 26000)
    self.assertIsNone(add_best_plugwire(CIPHERTEXT, unbeatable, quiet()))
    self.assertIs(solve_plugboard(unbeatable, CIPHERTEXT, quiet(number_of_wires=3)), unbeatable)

  def test_early_exit(self):
    conf = solve_plugboard(self.start, CIPHERTEXT, quiet(number_of_wires=2, early_exit_score=0))
    self.assertEqual(len(conf.plugboard), 1)

  def test_logs_improvements(self):
    with self.assertLogs("enigma_cracker", level="INFO") as logs:
      add_best_plugwire(CIPHERTEXT, self.start, SolverConfig())
    self.assertTrue(all("New max score" in line for line in logs.output))


class DecipherTest(ut.TestCase):
  def test_recovers_known_configuration(self):
    config = quiet(number_of_rotors=3, number_of_wires=2, early_exit_score=None)
    solution = decipher(CIPHERTEXT, config, RING_SETTINGS)
    self.assertEqual(solution.plaintext, PLAINTEXT)
    self.assertEqual(solution.candidate.rotors, ROTORS)
    self.assertEqual(solution.candidate.settings, SETTINGS)
    self.assertEqual(set(solution.candidate.plugboard), set(PLUGS))
    self.assertTrue(solution.plugboard_improved)
    self.assertEqual(solution.initial_score, ioc(CIPHERTEXT))
    self.assertEqual(len(solution.phase_one), 5)

  def test_without_wires_returns_phase_one_best(self):
    ring_settings = [(0, 7, r) for r in range(26)]
    solution = decipher(CIPHERTEXT, quiet(number_of_rotors=3), ring_settings)
    self.assertFalse(solution.plugboard_improved)
    self.assertEqual(solution.candidate, solution.phase_one[0])
    self.assertEqual(solution.candidate.rotors, ROTORS)

  def test_worker_pool_gives_same_answer(self):
    ring_settings = [(0, 7, r) for r in range(26)]
    serial = decipher(CIPHERTEXT, quiet(number_of_rotors=3, number_of_wires=1), ring_settings)
    parallel = decipher(CIPHERTEXT, quiet(number_of_rotors=3, number_of_wires=1, workers=2, chunksize=16), ring_settings)
    self.assertEqual(parallel.candidate, serial.candidate)
    self.assertEqual(parallel.plaintext, serial.plaintext)


if __name__ == '__main__':
  ut.main()
