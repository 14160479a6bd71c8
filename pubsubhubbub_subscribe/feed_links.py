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

"""Atom/RSS feed parser that extracts a feed's hub and self links.

The document is fed to an incremental SAX parser one chunk at a time and
parsing stops as soon as both links have been seen, so large feeds are never
buffered in full.

The character encoding comes from the byte order mark or the XML declaration,
falling back to the charset the document was served with. Expat only decodes
the UTF-8 and UTF-16 families itself; documents in any other encoding (such as
Shift_JIS or EUC-KR) are decoded incrementally and handed to the parser as
UTF-8 with their declaration rewritten.
"""

import codecs
import io
import logging
import re
import xml.sax
import xml.sax.handler

from pubsubhubbub_subscribe import errors


# Set to true to see stack level messages and other debugging information.
DEBUG = False

FEED_TYPES = frozenset(['rss', 'feed', 'rdf'])

# Root elements whose links live inside a channel element.
CHANNEL_FEED_TYPES = frozenset(['rss', 'rdf'])

# Codecs expat decodes without help.
EXPAT_ENCODINGS = frozenset(['utf-8', 'utf-16', 'utf-16-le', 'utf-16-be'])

# Bytes read at most while looking for the end of the XML declaration.
MAX_DECLARATION_SIZE = 1024

BYTE_ORDER_MARKS = (codecs.BOM_UTF8, codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)

XML_DECLARATION_RE = re.compile(br'^<\?xml[^>]*\?>')
DECLARED_ENCODING_RE = re.compile(
    br'''encoding\s*=\s*["']([A-Za-z0-9._:-]+)["']''')
REWRITE_ENCODING_RE = re.compile(
    r'''^(<\?xml[^>]*?encoding\s*=\s*["'])[A-Za-z0-9._:-]+''')


class TrivialEntityResolver(xml.sax.handler.EntityResolver):
  """Pass-through entity resolver."""

  def resolveEntity(self, publicId, systemId):
    return io.BytesIO()


class _FoundLinks(Exception):
  """Raised by the handler to stop parsing once scanning is finished."""


def local_name(name):
  """Returns the lower-cased tag name with any namespace prefix removed."""
  return name.rsplit(':', 1)[-1].lower()


class FeedLinksHandler(xml.sax.handler.ContentHandler):
  """SAX content handler that collects rel=self and rel=hub links.

  Only direct children of the link container are looked at: the root element
  for Atom feeds, the channel element for RSS and RDF feeds. Every other
  element is skipped along with its subtree.
  """

  def __init__(self):
    xml.sax.handler.ContentHandler.__init__(self)
    self.feed_type = None
    self.self_url = None
    self.hub_url = None
    self.stack_level = 0
    # Stack level of the element whose children are links; None until found.
    self.container_level = None

  def startElement(self, name, attrs):
    self.stack_level += 1
    if DEBUG: logging.debug('Start stack level %r', (self.stack_level, name))
    tag = local_name(name)

    if self.stack_level == 1:
      if tag not in FEED_TYPES:
        raise errors.UnexpectedFeedTypeError('unexpected feed type: %s' % name)
      self.feed_type = tag
      if tag not in CHANNEL_FEED_TYPES:
        self.container_level = 1
      return

    if self.container_level is None:
      if self.stack_level == 2 and tag == 'channel':
        self.container_level = 2
      return

    if self.stack_level != self.container_level + 1 or tag != 'link':
      return

    rels = (attrs.get('rel') or '').lower().split()
    href = attrs.get('href')
    if 'self' in rels and not self.self_url:
      self.self_url = href
    if 'hub' in rels and not self.hub_url:
      self.hub_url = href
    if self.self_url and self.hub_url:
      raise _FoundLinks()

  def endElement(self, name):
    if DEBUG: logging.debug('End stack level %r', (self.stack_level, name))
    if (self.container_level is not None and
        self.stack_level == self.container_level):
      # End of the channel (or of the whole Atom feed).
      raise _FoundLinks()
    self.stack_level -= 1


def _iter_chunks(data):
  if isinstance(data, bytes):
    yield data
  elif hasattr(data, 'read'):
    while True:
      chunk = data.read(8192)
      if not chunk:
        break
      yield chunk
  else:
    for chunk in data:
      yield chunk


def _read_prolog(chunks):
  """Reads chunks until the first '>' so a declaration is seen in full."""
  head = b''
  for chunk in chunks:
    head += chunk
    if b'>' in head or len(head) >= MAX_DECLARATION_SIZE:
      break
  return head


def declared_encoding(head):
  """Returns the encoding named by a document's XML declaration, or None.

  Documents starting with a byte order mark, or not starting with an
  ASCII-compatible declaration, return None.
  """
  if head.startswith(BYTE_ORDER_MARKS):
    return None
  match = XML_DECLARATION_RE.match(head)
  if not match:
    return None
  encoding = DECLARED_ENCODING_RE.search(match.group(0))
  if not encoding:
    return None
  return encoding.group(1).decode('ascii')


def _to_utf8(chunks, encoding=None):
  """Yields the document as chunks expat can decode.

  Args:
    chunks: Iterator of byte chunks.
    encoding: Charset the document was served with, used when neither a byte
      order mark nor an XML declaration names one.
  """
  head = _read_prolog(chunks)
  if head.startswith(BYTE_ORDER_MARKS):
    encoding = None
  else:
    encoding = declared_encoding(head) or encoding

  if encoding:
    try:
      encoding = codecs.lookup(encoding).name
    except LookupError:
      raise errors.FeedParseError(
          'could not parse feed: unknown encoding %s' % encoding)
  if not encoding or encoding in EXPAT_ENCODINGS:
    yield head
    for chunk in chunks:
      yield chunk
    return

  if DEBUG: logging.debug('Transcoding feed from %s', encoding)
  decoder = codecs.getincrementaldecoder(encoding)()
  text = REWRITE_ENCODING_RE.sub(r'\1utf-8', decoder.decode(head), count=1)
  yield text.encode('utf-8')
  for chunk in chunks:
    yield decoder.decode(chunk).encode('utf-8')
  yield decoder.decode(b'', True).encode('utf-8')


def extract_feed_links(data, encoding=None):
  """Extracts the self and hub links from an RSS, RDF or Atom feed.

  Args:
    data: The feed document as bytes, a binary file-like object, or an
      iterable of byte chunks (such as requests' Response.iter_content()).
    encoding: Charset from the HTTP Content-Type header, if any. Only used
      when the document itself does not name its encoding.

  Returns:
    Tuple (self_url, hub_url). Either may be None if the feed did not
    advertise it; callers must check both.

  Raises:
    UnexpectedFeedTypeError if the root element is not rss, feed or rdf.
    ChannelNotFoundError if an RSS or RDF document has no channel element.
    FeedParseError if the document is not well-formed XML or cannot be
    decoded.
  """
  handler = FeedLinksHandler()
  parser = xml.sax.make_parser()
  parser.setFeature(xml.sax.handler.feature_external_ges, False)
  parser.setFeature(xml.sax.handler.feature_external_pes, False)
  parser.setContentHandler(handler)
  parser.setEntityResolver(TrivialEntityResolver())

  try:
    for chunk in _to_utf8(_iter_chunks(data), encoding):
      if chunk:
        parser.feed(chunk)
    parser.close()
  except _FoundLinks:
    pass
  except xml.sax.SAXException as e:
    raise errors.FeedParseError('could not parse feed: %s' % e)
  except (ValueError, LookupError) as e:
    # Undecodable bytes, or an encoding expat refuses.
    raise errors.FeedParseError('could not decode feed: %s' % e)

  if handler.feed_type is None:
    raise errors.FeedParseError('could not parse feed: no element found')
  if handler.container_level is None:
    raise errors.ChannelNotFoundError(
        'no channel element found in %s document' % handler.feed_type)

  return handler.self_url, handler.hub_url


__all__ = ['extract_feed_links', 'DEBUG']
