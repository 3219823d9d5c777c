from enigma_cracker.alphabet import CHARSET_SIZE, c2n
from enigma_cracker.errors import DegenerateTextError


# Index of coincidence will be our objective function.
# https://en.wikipedia.org/wiki/Index_of_coincidence
def ioc(text):
  n = len(text)
  if n <= 1:
    raise DegenerateTextError("Index of coincidence needs at least 2 letters, got %d" % n)

  hist = [0]*CHARSET_SIZE
  for c in text:
    hist[c2n(c)] += 1

  numerator = sum(count*(count - 1) for count in hist)
  denominator = n*(n - 1)/CHARSET_SIZE
  return round(numerator/denominator*1000)
