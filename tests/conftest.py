# Copyright 2019 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""In-memory stand-ins for the Firestore client and notification channels."""

import pytest

from phishing_watch.errors import SenderDeliveryError


class FakeDocument(object):

  def __init__(self, doc_id, data):
    self.id = doc_id
    self._data = data

  def to_dict(self):
    return dict(self._data)


class FakeWatch(object):

  def __init__(self):
    self.unsubscribed = 0
    self.is_active = True

  def unsubscribe(self):
    self.unsubscribed += 1
    self.is_active = False


class FakeQuery(object):
  """Supports the subset of the Query API used: where, get and on_snapshot."""

  def __init__(self, documents, filters=(), error=None):
    self.documents = documents
    self.filters = filters
    self.error = error
    self.callback = None
    self.watch = None

  def where(self, filter=None):  # pylint: disable=redefined-builtin
    return FakeQuery(self.documents, self.filters + (filter,), self.error)

  def matching(self):
    return [doc for doc in self.documents
            if all(doc.to_dict().get(f.field_path) == f.value
                   for f in self.filters)]

  def get(self):
    if self.error:
      raise self.error
    return self.matching()

  def on_snapshot(self, callback):
    self.callback = callback
    self.watch = FakeWatch()
    return self.watch

  def push(self, changes=None):
    """Deliver the current matching documents to the listener."""
    self.callback(self.matching(), changes or [], '2019-03-07T00:00:00Z')


class FakeClient(object):

  def __init__(self, documents=None, error=None):
    self.documents = documents if documents is not None else []
    self.error = error
    self.collections = []

  def collection(self, name):
    self.collections.append(name)
    return FakeQuery(self.documents, error=self.error)


class RecordingSender(object):
  """Remembers every batch it was given, optionally failing each time."""

  def __init__(self, channel, calls, error=None):
    self.channel = channel
    self.calls = calls
    self.batches = []
    self.error = error

  def deliver(self, batch):
    self.calls.append(self.channel)
    self.batches.append(batch)
    if self.error is not None:
      raise self.error


@pytest.fixture()
def documents():
  return [
      FakeDocument('a1', {'category': 'credential-theft',
                          'url': 'http://examp1e.com/login'}),
      FakeDocument('b2', {'category': 'invoice', 'sender': 'billing@x.test'}),
      FakeDocument('c3', {'category': 'credential-theft',
                          'url': 'http://paypa1.test'}),
  ]


@pytest.fixture()
def calls():
  return []


@pytest.fixture()
def senders(calls):
  return [RecordingSender(channel, calls)
          for channel in ('gmail', 'outlook', 'sms', 'social')]


@pytest.fixture()
def failing_outlook(calls):
  return [
      RecordingSender('gmail', calls),
      RecordingSender('outlook', calls,
                      error=SenderDeliveryError('outlook', '401 Unauthorized')),
      RecordingSender('sms', calls),
      RecordingSender('social', calls),
  ]
