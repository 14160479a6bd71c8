#!/usr/bin/env python
#
# Copyright 2009 Google Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#

"""Validation of the X-Hub-Signature header sent with content distribution."""

import hashlib
import hmac
import logging


HASH_FUNCTIONS = {
  'sha1': hashlib.sha1,
  'sha256': hashlib.sha256,
  'sha384': hashlib.sha384,
  'sha512': hashlib.sha512,
}


def new_hash(name):
  """Returns the hash constructor for an algorithm name, or None if unknown."""
  return HASH_FUNCTIONS.get(name.lower())


def _to_bytes(value):
  if isinstance(value, str):
    return value.encode('utf-8')
  return value


def validate_signature(body, secret, signature):
  """Checks a signature header a hub sent along with a payload.

  Args:
    body: The raw request body, as bytes (str is encoded as UTF-8).
    secret: The shared secret given to the hub when subscribing.
    signature: Value of the X-Hub-Signature header, "<algorithm>=<hexdigest>".

  Returns:
    True if the signature matches the body, False otherwise. Malformed
    headers and unknown algorithms are never valid.
  """
  hash_name, sep, digest = (signature or '').partition('=')
  if not sep:
    logging.debug('Signature header has no algorithm separator')
    return False

  hash_func = new_hash(hash_name)
  if hash_func is None:
    logging.debug('Unsupported signature algorithm: %s', hash_name)
    return False

  expected = hmac.new(_to_bytes(secret), _to_bytes(body),
                      hash_func).hexdigest()
  # Compare as bytes; compare_digest rejects non-ASCII str arguments.
  return hmac.compare_digest(expected.encode('ascii'),
                             digest.strip().lower().encode('utf-8'))
