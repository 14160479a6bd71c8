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

"""Subscription records and the requests sent to hubs."""

import hashlib
import logging
import urllib.parse

from pubsubhubbub_subscribe import errors


MODE_SUBSCRIBE = 'subscribe'
MODE_UNSUBSCRIBE = 'unsubscribe'
MODE_DENIED = 'denied'
MODES = frozenset([
  MODE_SUBSCRIBE,
  MODE_UNSUBSCRIBE,
  MODE_DENIED,
])

FORM_CONTENT_TYPE = 'application/x-www-form-urlencoded'


def sha1_hash(value):
  """Returns the sha1 hash of the supplied value."""
  return hashlib.sha1(value.encode('utf-8')).hexdigest()


def get_hash_key_name(value):
  """Returns a storage key name that's a hash of the supplied value."""
  return 'hash_' + sha1_hash(value)


def callback_path(topic):
  """Returns the callback path segment derived from a topic URL.

  The segment is the hex sha256 digest of the topic URL's UTF-8 bytes, so the
  same topic always maps onto the same callback.
  """
  return hashlib.sha256(topic.encode('utf-8')).hexdigest()


def is_valid_url(url):
  """Returns True if the URL is valid, False otherwise."""
  if not url:
    return False
  split = urllib.parse.urlparse(url)
  if not split.scheme in ('http', 'https'):
    logging.debug('URL scheme is invalid: %s', url)
    return False

  if not split.netloc:
    logging.debug('URL has no host: %s', url)
    return False

  if split.fragment:
    logging.debug('URL includes fragment: %s', url)
    return False

  return True


class Subscription(object):
  """Represents a single subscription to a topic for a callback URL.

  lease_seconds and expiration_time stay None until the hub has verified the
  subscription; they are then set from the lease the hub granted.
  """

  def __init__(self, topic, callback, secret=None, lease_seconds=None,
               expiration_time=None):
    self.topic = topic
    self.callback = callback
    self.secret = secret
    self.lease_seconds = lease_seconds
    self.expiration_time = expiration_time

  @staticmethod
  def create_key_name(callback, topic):
    """Returns the key name for a Subscription.

    Args:
      callback: URL of the callback subscriber.
      topic: URL of the topic being subscribed to.

    Returns:
      String containing the key name for the corresponding Subscription.
    """
    return get_hash_key_name('%s\n%s' % (callback, topic))

  def key_name(self):
    return self.create_key_name(self.callback, self.topic)

  def copy(self):
    return Subscription(self.topic, self.callback, secret=self.secret,
                        lease_seconds=self.lease_seconds,
                        expiration_time=self.expiration_time)

  @property
  def verified(self):
    return self.expiration_time is not None

  def __eq__(self, other):
    if not isinstance(other, Subscription):
      return NotImplemented
    return (self.topic, self.callback, self.secret, self.lease_seconds,
            self.expiration_time) == (
                other.topic, other.callback, other.secret,
                other.lease_seconds, other.expiration_time)

  __hash__ = None

  def __repr__(self):
    return ('Subscription(topic=%r, callback=%r, lease_seconds=%r, '
            'expiration_time=%r)' % (self.topic, self.callback,
                                     self.lease_seconds,
                                     self.expiration_time))


class SubscribeRequest(object):
  """A subscribe request as sent to a hub."""

  mode = MODE_SUBSCRIBE

  def __init__(self, topic, callback, lease_seconds, secret=None):
    self.topic = topic
    self.callback = callback
    self.lease_seconds = lease_seconds
    self.secret = secret

  def validate(self):
    """Checks the request before anything goes over the wire.

    Raises:
      InvalidRequestError naming the first bad parameter.
    """
    if not is_valid_url(self.callback):
      raise errors.InvalidRequestError('Invalid parameter: hub.callback')
    if not is_valid_url(self.topic):
      raise errors.InvalidRequestError('Invalid parameter: hub.topic')
    if (isinstance(self.lease_seconds, bool) or
        not isinstance(self.lease_seconds, int) or self.lease_seconds <= 0):
      raise errors.InvalidRequestError(
          'Invalid value for hub.lease_seconds: %s' % (self.lease_seconds,))

  def to_form(self):
    """Returns the request as a list of (name, value) form parameters."""
    params = [
      ('hub.mode', self.mode),
      ('hub.topic', self.topic),
      ('hub.callback', self.callback),
    ]
    if self.secret:
      params.append(('hub.secret', self.secret))
    params.append(('hub.lease_seconds', str(self.lease_seconds)))
    return params

  def encode(self):
    """Returns the form-encoded request body."""
    return urllib.parse.urlencode(self.to_form())


class UnsubscribeRequest(object):
  """An unsubscribe request as sent to a hub."""

  mode = MODE_UNSUBSCRIBE

  def __init__(self, topic, callback):
    self.topic = topic
    self.callback = callback

  def validate(self):
    if not is_valid_url(self.callback):
      raise errors.InvalidRequestError('Invalid parameter: hub.callback')
    if not is_valid_url(self.topic):
      raise errors.InvalidRequestError('Invalid parameter: hub.topic')

  def to_form(self):
    return [
      ('hub.mode', self.mode),
      ('hub.topic', self.topic),
      ('hub.callback', self.callback),
    ]

  def encode(self):
    return urllib.parse.urlencode(self.to_form())
