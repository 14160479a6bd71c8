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

"""Exceptions raised by the PubSubHubbub subscriber client."""


class Error(Exception):
  """Base class for all errors in this package."""


################################################################################
# Discovery

class DiscoveryError(Error):
  """Raised when the hub and self URLs of a topic could not be determined.

  The exception detail should be a descriptive string that could be shown
  to whoever asked for the subscription.
  """


class FetchError(DiscoveryError):
  """The topic URL could not be fetched, or returned a non-2xx status."""

  def __init__(self, message, status_code=None):
    DiscoveryError.__init__(self, message)
    self.status_code = status_code


class NoHubError(DiscoveryError):
  """No hub link was advertised by the topic."""


class NoSelfError(DiscoveryError):
  """No self link was advertised by the topic."""


class UnexpectedFeedTypeError(DiscoveryError):
  """The XML document's root element is not rss, feed or rdf."""


class ChannelNotFoundError(DiscoveryError):
  """An RSS or RDF document ended before its channel element was found."""


class FeedParseError(DiscoveryError):
  """The XML document could not be parsed."""


################################################################################
# Protocol

class ProtocolError(Error):
  """The hub or the request violated the subscription protocol."""


class InvalidRequestError(ProtocolError):
  """A subscribe or unsubscribe request failed validation before sending."""


class HubRequestError(ProtocolError):
  """The request to the hub could not be delivered."""


class UnexpectedResponseError(ProtocolError):
  """The hub answered a subscription request with something other than 202."""

  def __init__(self, status_code, body):
    ProtocolError.__init__(
        self, 'unexpected response code %d: %s' % (status_code, body))
    self.status_code = status_code
    self.body = body


class NoChallengeError(ProtocolError):
  """A verification request carried no hub.challenge."""

  def __init__(self, message='no challenge specified'):
    ProtocolError.__init__(self, message)


class InvalidLeaseError(ProtocolError):
  """A verification request carried a hub.lease_seconds that is not an int."""

  def __init__(self, message='invalid lease duration'):
    ProtocolError.__init__(self, message)


class InvalidModeError(ProtocolError):
  """A verification request carried an unknown hub.mode."""


class SubscriptionDeniedError(ProtocolError):
  """The hub denied a pending subscription."""

  def __init__(self, reason):
    ProtocolError.__init__(self, 'subscription denied: %s' % reason)
    self.reason = reason


################################################################################
# Reconciliation and authenticity

class NotFoundError(Error):
  """No subscription or pending intent matches the request."""

  def __init__(self, message='subscription not found'):
    Error.__init__(self, message)


class ForbiddenError(Error):
  """A notification's signature was missing or did not validate."""
