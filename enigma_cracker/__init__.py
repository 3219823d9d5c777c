from enigma_cracker.errors import ConfigurationError, DegenerateTextError, EnigmaError
from enigma_cracker.machine import ROTOR_NAMES, ROTOR_SPECS, Enigma, Plugboard, Reflector, Rotor, cipher_string
from enigma_cracker.results import Candidate, TopResults
from enigma_cracker.scoring import ioc
from enigma_cracker.solver import Solution, SolverConfig, decipher

__all__ = [
  "Candidate",
  "ConfigurationError",
  "DegenerateTextError",
  "Enigma",
  "EnigmaError",
  "Plugboard",
  "ROTOR_NAMES",
  "ROTOR_SPECS",
  "Reflector",
  "Rotor",
  "Solution",
  "SolverConfig",
  "TopResults",
  "cipher_string",
  "decipher",
  "ioc",
]
