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

"""Handling of the requests a hub makes to our callback URLs.

Requests carrying a hub.mode parameter are intent verifications (or denials)
for a pending subscribe or unsubscribe request. Every other request is a
content distribution for an existing subscription.
"""

import datetime
import logging
import urllib.parse

import webob
import webob.dec

from pubsubhubbub_subscribe import errors
from pubsubhubbub_subscribe import events
from pubsubhubbub_subscribe import models
from pubsubhubbub_subscribe import signature


SIGNATURE_HEADER = 'X-Hub-Signature'


def parse_lease_seconds(value):
  """Parses a hub.lease_seconds value.

  Raises:
    InvalidLeaseError if the value is not an integer or is negative.
  """
  try:
    lease_seconds = int(value)
    if lease_seconds < 0:
      raise ValueError
  except (TypeError, ValueError):
    raise errors.InvalidLeaseError(
        'Invalid value for hub.lease_seconds: %r' % (value,))
  return lease_seconds


class VerificationDispatcher(object):
  """Reconciles hub verification requests with pending intents."""

  def __init__(self, store, intents, event_registry,
               now=datetime.datetime.now):
    """Initializer.

    Args:
      store: The store.Store holding committed subscriptions.
      intents: The intents.PendingIntentTracker of requests sent to hubs.
      event_registry: events.EventRegistry to report denials to.
      now: Callable that returns the current time as a datetime instance.
    """
    self.store = store
    self.intents = intents
    self.event_registry = event_registry
    self.now = now
    self._handlers = {
      models.MODE_SUBSCRIBE: self._verify_subscribe,
      models.MODE_UNSUBSCRIBE: self._verify_unsubscribe,
      models.MODE_DENIED: self._verify_denied,
    }

  def verify(self, mode, topic, callback, params):
    """Handles a verification request.

    Args:
      mode: Value of hub.mode.
      topic: Value of hub.topic.
      callback: The callback URL the request arrived on, without query.
      params: Mapping of all request parameters.

    Returns:
      The challenge to echo back to the hub, as bytes.

    Raises:
      InvalidModeError, NoChallengeError, InvalidLeaseError, NotFoundError or
      SubscriptionDeniedError.
    """
    mode = (mode or '').lower()
    handler = self._handlers.get(mode)
    if handler is None:
      raise errors.InvalidModeError('Invalid value for hub.mode: %s' % mode)
    logging.debug('Verifying %s for topic = %s, callback = %s',
                  mode, topic, callback)
    return handler(topic, callback, params)

  @staticmethod
  def _get_challenge(params):
    challenge = params.get('hub.challenge', '')
    if not challenge:
      raise errors.NoChallengeError()
    return challenge

  def _verify_subscribe(self, topic, callback, params):
    challenge = self._get_challenge(params)

    sub = self.intents.pop(models.MODE_SUBSCRIBE, topic, callback)
    if sub is None:
      logging.warning('No pending subscribe for topic = %s, callback = %s',
                      topic, callback)
      raise errors.NotFoundError()

    lease_seconds = parse_lease_seconds(params.get('hub.lease_seconds'))
    sub.lease_seconds = lease_seconds
    sub.expiration_time = self.now() + datetime.timedelta(seconds=lease_seconds)
    self.store.add(sub)
    logging.info('Subscription verified for topic = %s, callback = %s, '
                 'lease_seconds = %d', topic, callback, lease_seconds)
    return challenge.encode('utf-8')

  def _verify_unsubscribe(self, topic, callback, params):
    challenge = self._get_challenge(params)

    sub = self.intents.pop_by_topic(models.MODE_UNSUBSCRIBE, topic, callback)
    if sub is None:
      logging.warning('No pending unsubscribe for topic = %s', topic)
      raise errors.NotFoundError()

    self.store.remove(sub)
    logging.info('Unsubscription verified for topic = %s, callback = %s',
                 sub.topic, sub.callback)
    return challenge.encode('utf-8')

  def _verify_denied(self, topic, callback, params):
    sub = self.intents.pop(models.MODE_SUBSCRIBE, topic, callback)
    if sub is None:
      raise errors.NotFoundError()

    reason = params.get('hub.reason', '')
    logging.warning('Subscription denied for topic = %s, callback = %s: %s',
                    topic, callback, reason)
    self.event_registry.call(events.SubscriptionDenied(sub, reason))
    raise errors.SubscriptionDeniedError(reason)


class NotificationDispatcher(object):
  """Authenticates content distribution requests and emits Publish events."""

  def __init__(self, store, event_registry):
    self.store = store
    self.event_registry = event_registry

  def notify(self, callback, content_type, body, hub_signature=None):
    """Handles a content distribution request.

    Args:
      callback: The callback URL the request arrived on, without query.
      content_type: Value of the request's Content-Type header.
      body: The request body, as bytes.
      hub_signature: Value of the X-Hub-Signature header, if any.

    Returns:
      The events.Publish instance delivered to the handlers.

    Raises:
      NotFoundError if no subscription is delivered to the callback.
      ForbiddenError if the subscription has a secret and the signature is
      missing or wrong.
    """
    subs = self.store.for_callback(callback)
    if not subs:
      raise errors.NotFoundError('no subscription for callback %s' % callback)
    sub = subs[0]

    if sub.secret:
      if not hub_signature:
        logging.warning('Missing signature for callback = %s', callback)
        raise errors.ForbiddenError('missing signature')
      if not signature.validate_signature(body, sub.secret, hub_signature):
        logging.warning('Invalid signature for callback = %s', callback)
        raise errors.ForbiddenError('invalid signature')

    logging.info('Received %d bytes of %s for topic = %s',
                 len(body), content_type, sub.topic)
    event = events.Publish(sub, content_type, body)
    self.event_registry.call(event)
    return event


class CallbackApplication(object):
  """WSGI application serving the callback URLs given to hubs."""

  def __init__(self, verification, notification, callback_base=''):
    """Initializer.

    Args:
      verification: VerificationDispatcher for requests with a hub.mode.
      notification: NotificationDispatcher for all other requests.
      callback_base: Public base URL of the callbacks. Its scheme and host
        replace the ones of the incoming request, which may differ behind a
        proxy. When empty, the request's own URL is used.
    """
    self.verification = verification
    self.notification = notification
    self.callback_base = callback_base

  def callback_url(self, request):
    """Returns the callback URL a request arrived on: scheme, host and path."""
    if self.callback_base:
      split = urllib.parse.urlsplit(self.callback_base)
      return urllib.parse.urlunsplit(
          (split.scheme, split.netloc, request.path, '', ''))
    return request.path_url

  @webob.dec.wsgify
  def __call__(self, request):
    try:
      params = request.GET
      mode = params.get('hub.mode', '')
    except (UnicodeDecodeError, ValueError):
      logging.debug('Undecodable query string: %r', request.query_string)
      return webob.Response(status=400)

    callback = self.callback_url(request)
    try:
      if mode:
        return self._verify(mode, callback, params)
      return self._notify(request, callback)
    except (errors.NoChallengeError, errors.InvalidLeaseError,
            errors.InvalidModeError) as e:
      return webob.Response(status=400, content_type='text/plain',
                            charset='utf-8', text=str(e))
    except errors.ForbiddenError:
      return webob.Response(status=403)
    except errors.NotFoundError:
      return webob.Response(status=404)
    except errors.SubscriptionDeniedError:
      # Already logged and reported to the handlers; no body.
      return webob.Response(status=500)
    except Exception:
      logging.exception('Error handling callback request for %s', callback)
      return webob.Response(status=500, content_type='text/plain',
                            charset='utf-8', text='Internal error')

  def _verify(self, mode, callback, params):
    challenge = self.verification.verify(
        mode, params.get('hub.topic', ''), callback, params)
    response = webob.Response(status=200, content_type='text/plain',
                              charset='utf-8')
    response.body = challenge
    return response

  def _notify(self, request, callback):
    self.notification.notify(callback,
                             request.headers.get('Content-Type', ''),
                             request.body,
                             request.headers.get(SIGNATURE_HEADER))
    return webob.Response(status=200)
