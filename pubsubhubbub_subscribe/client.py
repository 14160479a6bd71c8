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

"""PubSubHubbub subscriber client.

Example usage:

  from pubsubhubbub_subscribe import client, events

  subscriber = client.Client('https://example.com/websub')
  subscriber.on(events.Publish, lambda event: handle(event.data))

  # Serve the callbacks with any WSGI server; the client is the application.
  wsgiref.simple_server.make_server('', 8080, subscriber).serve_forever()

  try:
    sub = subscriber.subscribe('https://example.com/feed.xml',
                               secret='my shared secret')
  except errors.Error as e:
    # handle exception...

A subscription is only pending when subscribe() returns. Its lease and
expiration time are set once the hub has verified it through the callback.
"""

import datetime
import logging
import urllib.parse

import requests

from pubsubhubbub_subscribe import callback as callback_lib
from pubsubhubbub_subscribe import discovery
from pubsubhubbub_subscribe import errors
from pubsubhubbub_subscribe import events
from pubsubhubbub_subscribe import intents
from pubsubhubbub_subscribe import models
from pubsubhubbub_subscribe import store as store_lib

################################################################################
# Config parameters

# Lease to request when the caller does not ask for one.
DEFAULT_LEASE_SECONDS = 24 * 60 * 60  # 1 day

# Timeout for discovery and hub requests, in seconds.
FETCH_TIMEOUT = 30

USER_AGENT = 'pubsubhubbub_subscribe/1.0'

################################################################################


class Client(object):
  """Subscribes to topics and serves the callbacks hubs make.

  The client is a WSGI application: mount it where callback_base points to.
  """

  def __init__(self, callback_base='', store=None, session=None,
               lease_seconds=DEFAULT_LEASE_SECONDS, timeout=FETCH_TIMEOUT,
               now=datetime.datetime.now):
    """Initializer.

    Args:
      callback_base: Public base URL of the callbacks. Callbacks derived from
        topic URLs are placed under it.
      store: store.Store for subscription records; in-memory by default.
      session: requests.Session used for discovery and hub requests.
      lease_seconds: Lease to request when subscribe() is not given one.
      timeout: Timeout for outgoing requests, in seconds.
      now: Callable that returns the current time as a datetime instance. Used
        for testing.
    """
    self.callback_base = callback_base.rstrip('/')
    self.store = store if store is not None else store_lib.MemoryStore()
    if session is None:
      session = requests.Session()
      session.headers['User-Agent'] = USER_AGENT
    self.session = session
    self.lease_seconds = lease_seconds
    self.timeout = timeout
    self.intents = intents.PendingIntentTracker()
    self.event_registry = events.EventRegistry()
    self.verification = callback_lib.VerificationDispatcher(
        self.store, self.intents, self.event_registry, now=now)
    self.notification = callback_lib.NotificationDispatcher(
        self.store, self.event_registry)
    self.application = callback_lib.CallbackApplication(
        self.verification, self.notification, self.callback_base)

  def __call__(self, environ, start_response):
    return self.application(environ, start_response)

  def on(self, event_class, func):
    """Registers func(event) for events.Publish or events.SubscriptionDenied."""
    self.event_registry.on(event_class, func)

  def discover(self, topic):
    """Returns the (self_url, hub_url) advertised by a topic."""
    return discovery.discover(topic, session=self.session,
                              timeout=self.timeout)

  def callback_for(self, topic):
    """Returns the callback URL derived from a topic URL, or '' if no base."""
    if not self.callback_base:
      return ''
    return self.callback_base + '/' + models.callback_path(topic)

  def _resolve(self, topic, hub, callback):
    if hub:
      hub_url = hub
    else:
      topic, hub_url = self.discover(topic)
    if not callback:
      callback = self.callback_for(topic)
    elif not self.callback_base:
      # Callback requests are matched on the host the first callback named.
      split = urllib.parse.urlsplit(callback)
      if split.scheme and split.netloc:
        self.callback_base = '%s://%s' % (split.scheme, split.netloc)
        self.application.callback_base = self.callback_base
    return topic, hub_url, callback

  def subscribe(self, topic, hub=None, callback=None, secret=None,
                lease_seconds=None):
    """Asks a hub to subscribe a callback to a topic.

    Args:
      topic: URL of the topic. Without a hub, discovery is run on it and the
        topic's self URL is subscribed to instead.
      hub: URL of the hub. When given, no discovery happens.
      callback: Callback URL; derived from the topic URL if not given.
      secret: Shared secret the hub will sign content distributions with.
        For an existing subscription it replaces the stored secret only once
        the hub verifies the request.
      lease_seconds: Lease to ask for; the client default if not positive.

    Returns:
      The pending Subscription. Its lease_seconds and expiration_time are set
      only once the hub verifies the subscription.

    Raises:
      DiscoveryError if discovery fails.
      InvalidRequestError if the request is invalid; nothing has been sent.
      HubRequestError or UnexpectedResponseError if the hub did not accept
      the request.
    """
    topic, hub_url, callback = self._resolve(topic, hub, callback)

    if not lease_seconds or lease_seconds <= 0:
      lease_seconds = self.lease_seconds
    request = models.SubscribeRequest(topic, callback, lease_seconds,
                                      secret=secret)
    request.validate()

    sub = self.store.get(topic, callback)
    if sub is None:
      # Provisional until verified; verification fills in the lease.
      sub = models.Subscription(topic, callback, secret=secret)
      self.store.add(sub)
    else:
      # The stored record keeps its secret until the hub verifies this one.
      sub.secret = secret
    self.intents.add(models.MODE_SUBSCRIBE, sub)

    logging.debug('Sending subscribe request to hub = %s for topic = %s, '
                  'callback = %s, lease_seconds = %s',
                  hub_url, topic, callback, lease_seconds)
    try:
      self._post(hub_url, request)
    except errors.Error:
      self.intents.pop(models.MODE_SUBSCRIBE, topic, callback)
      raise
    return sub

  def unsubscribe(self, topic, callback=None, hub=None):
    """Asks a hub to unsubscribe a callback from a topic.

    Args:
      topic: URL of the topic; discovery is run on it unless hub is given.
      callback: Callback URL; derived from the topic URL if not given.
      hub: URL of the hub. When given, no discovery happens.

    Raises:
      DiscoveryError if discovery fails.
      NotFoundError if there is no subscription for the topic and callback.
      HubRequestError or UnexpectedResponseError if the hub did not accept
      the request.
    """
    topic, hub_url, callback = self._resolve(topic, hub, callback)

    request = models.UnsubscribeRequest(topic, callback)
    request.validate()

    sub = self.store.get(topic, callback)
    if sub is None:
      raise errors.NotFoundError(
          'no subscription for topic %s, callback %s' % (topic, callback))

    self.intents.add(models.MODE_UNSUBSCRIBE, sub)

    logging.debug('Sending unsubscribe request to hub = %s for topic = %s, '
                  'callback = %s', hub_url, topic, callback)
    try:
      self._post(hub_url, request)
    except errors.Error:
      self.intents.pop(models.MODE_UNSUBSCRIBE, topic, callback)
      raise

  def _post(self, hub_url, request):
    """Sends a form-encoded request to a hub and requires 202 Accepted."""
    try:
      response = self.session.post(
          hub_url, data=request.encode(), timeout=self.timeout,
          headers={'Content-Type': models.FORM_CONTENT_TYPE})
    except requests.RequestException as e:
      logging.exception('Failed to deliver %s request to %s',
                        request.mode, hub_url)
      raise errors.HubRequestError('%s, Hub: "%s"' % (e, hub_url))

    if response.status_code != 202:
      logging.warning('Hub %s answered %s request with status %d: %s',
                      hub_url, request.mode, response.status_code,
                      response.text)
      raise errors.UnexpectedResponseError(response.status_code, response.text)
