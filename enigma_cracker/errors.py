class EnigmaError(Exception):
  pass

class ConfigurationError(EnigmaError, ValueError):
  pass

class DegenerateTextError(EnigmaError, ValueError):
  pass
