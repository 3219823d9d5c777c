#!/usr/bin/env python3

import argparse
import json
import logging
import re
import time

from enigma_cracker.alphabet import n2c
from enigma_cracker.errors import EnigmaError
from enigma_cracker.machine import Enigma
from enigma_cracker.scoring import ioc
from enigma_cracker.solver import SolverConfig, decipher


BANNER = r"""
  _____       _                          ____                _
 | ____|_ __ (_) __ _ _ __ ___   __ _   / ___|_ __ __ _  ___| | _____ _ __
 |  _| | '_ \| |/ _` | '_ ` _ \ / _` | | |   | '__/ _` |/ __| |/ / _ \ '__|
 | |___| | | | | (_| | | | | | | (_| | | |___| | | (_| | (__|   <  __/ |
 |_____|_| |_|_|\__, |_| |_| |_|\__,_|  \____|_|  \__,_|\___|_|\_\___|_|
                |___/
"""


class BlankLinesHelpFormatter (argparse.HelpFormatter):
  def _split_lines(self, text, width):
    return super()._split_lines(text, width) + ['']
  def _fill_text(self, text, width, indent):
    return ''.join(indent + line for line in text.splitlines(keepends=True))


usage_examples = '''Examples:

./EnigmaCracker.py -p "Hello World" -c '{"Rotors":"II IV V", "Reflector":"B", "Ring":[0, 0, 0], "Plugboard":"AV BS CG DL FU HZ", "Key":"WXC"}'
./EnigmaCracker.py -a "CIPHERTEXT" -r 5 -w 6
./EnigmaCracker.py -f ciphertext.txt -w 10 -j 8 -o found.json
./EnigmaCracker.py -f ciphertext.txt --model '{"Rotors":5, "Wires":6, "Top":10, "EarlyExit":1700}' -s
./EnigmaCracker.py -i
 '''


def build_parser():
  parser = argparse.ArgumentParser(description='Enigma tool for cryptanalysis', formatter_class=BlankLinesHelpFormatter, epilog=usage_examples)
  emcgroup = parser.add_argument_group("Enigma Cracker", "Options for Enigma Cracker")
  emcgroup.add_argument("-p", "--process", dest='text_process', type=str, help="Encrypt or decrypt a text")
  emcgroup.add_argument("-a", "--attack", dest='text_attack', type=str, help="Attack a ciphertext")
  emcgroup.add_argument("-f", "--ciphertext-file", dest='ciphertext_file', type=str, help="Attack the ciphertext stored in a file")
  emcgroup.add_argument("-i", "--notches-informations", dest='notches_informations', action="store_true", help="Print the positions of the turnover notches for each rotor")

  edgroup = parser.add_argument_group("Encrypt and Decrypt", "Options for -p")
  edgroup.add_argument("-c", "--configuration", dest='configuration', type=str, help="Enigma configuration for encrypting and decrypting")

  agroup = parser.add_argument_group("Attack", "Options for -a & -f")
  agroup.add_argument("-r", "--rotors", dest='number_of_rotors', type=int, help="Number of rotor designs to try, taken in order from I to VIII (3-8, default 8)")
  agroup.add_argument("-w", "--wires", dest='number_of_wires', type=int, help="Number of plugboard wires to look for (default 0)")
  agroup.add_argument("-n", "--top", dest='top_n', type=int, help="Number of rotor configurations kept for the plugboard search (default 5)")
  agroup.add_argument("-j", "--workers", dest='workers', type=int, help="Number of worker processes (default 1)")
  agroup.add_argument("-s", "--silent", dest='silent', action="store_true", help="Log fewer things")
  agroup.add_argument("-o", "--output", dest='output_file', type=str, help="Output file to save the found configuration")
  agroup.add_argument("--model", dest='model_configurations', type=str, help="Solver settings as JSON, keys: Rotors, Wires, Top, Positions, Reflector, EarlyExit, Workers")
  return parser


class MissingParameter(Exception):
  pass


def configure_logging(silent):
  logging.basicConfig(
    level=logging.WARNING if silent else logging.INFO,
    format="[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
  )


def clean_text(text):
  return re.sub("[^a-zA-Z]+", "", text).upper()


def load_json(text, option):
  try:
    return json.loads(text)
  except json.JSONDecodeError as e:
    raise MissingParameter("Invalid JSON for %s: %s" % (option, e))


def process(options):
  configuration = load_json(options.configuration, "--configuration")
  if not isinstance(configuration, dict):
    raise MissingParameter("Configuration must be a JSON object, please use --help")
  missing = [key for key in ("Rotors", "Reflector", "Ring", "Key") if key not in configuration]
  if missing:
    raise MissingParameter("Missing " + ", ".join(missing) + " in configuration, please use --help")
  print("Configuration :")
  print("Rotors : " + configuration["Rotors"])
  print("Reflector : " + configuration["Reflector"])
  print("Ring : " + " ".join([str(ring) for ring in configuration["Ring"]]))
  print("Plugboard : " + configuration.get("Plugboard", ""))
  print("Key : " + configuration["Key"])
  print("Processing text using specified configuration...")
  machine = Enigma.from_key_sheet(
    rotors = configuration["Rotors"],
    reflector = configuration["Reflector"],
    ring_settings = configuration["Ring"],
    plugboard_settings = configuration.get("Plugboard", ""),
    key = configuration["Key"])
  text = machine.Process(clean_text(options.text_process))
  print("Result (IC : " + str(ioc(text)) + "):\n")
  print(text)


def solver_config(options):
  model = load_json(options.model_configurations, "--model") if options.model_configurations else {}
  if not isinstance(model, dict):
    raise MissingParameter("Model must be a JSON object, please use --help")
  overrides = {name: getattr(options, name)
               for name in ("number_of_rotors", "number_of_wires", "top_n", "workers")
               if getattr(options, name) is not None}
  if options.silent:
    overrides["silent"] = True
  return SolverConfig.from_model(model, **overrides).validate()


def attack(options):
  if options.ciphertext_file:
    with open(options.ciphertext_file) as f:
      text_attack = clean_text(f.read())
  else:
    text_attack = clean_text(options.text_attack)
  config = solver_config(options)

  print("Selected model :")
  print("Rotors count : " + str(config.number_of_rotors))
  print("Number of plugs in plugboard : " + str(config.number_of_wires))
  print("Top results kept : " + str(config.top_n))
  print("Input text: " + text_attack)

  timer = time.perf_counter()
  solution = decipher(text_attack, config)
  top = solution.candidate
  print("Best parameters: rotors: %s, settings: %s, score: %d, plugboard: %s" % (list(top.rotors), list(top.settings), top.score, top.plugboard_settings or "-"))
  if not solution.plugboard_improved and config.number_of_wires:
    print("No plugboard wire improved the score")
  print("Best guess: " + solution.plaintext)
  print("Deciphered in %dms" % ((time.perf_counter() - timer)*1000))

  if options.output_file:
    key = "".join(n2c(p) for p in config.initial_positions)
    with open(options.output_file, "a") as f:
      f.write(json.dumps(top.as_configuration(key, config.reflector)) + "\n")


def main(argv=None):
  options = build_parser().parse_args(argv)
  print(BANNER)
  configure_logging(options.silent)
  try:
    if options.notches_informations:
      print("+---------------+----------------------+")
      print("|     Rotor     | Turnover Position(s) |")
      print("+---------------+----------------------+")
      print("| I             | Q -> R               |")
      print("| II            | E -> F               |")
      print("| III           | V -> W               |")
      print("| IV            | J -> K               |")
      print("| V             | Z -> A               |")
      print("| VI, VII, VIII | Z -> A & M -> N      |")
      print("+---------------+----------------------+")

    elif options.text_process:
      if not options.configuration:
        raise MissingParameter("Missing configuration, please use --help")
      process(options)

    elif options.text_attack or options.ciphertext_file:
      attack(options)

    else:
      raise MissingParameter("Missing options, please use --help")
  except (MissingParameter, EnigmaError) as e:
    print(e)
    return 1
  return 0


if __name__ == "__main__":
  raise SystemExit(main())
