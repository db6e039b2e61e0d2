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

"""Fans record batches out to the notification senders.

Two pipelines share this dispatch step: a read-once request, which answers
with the batch it notified about, and a long-lived Subscription, which only
notifies.
"""

import collections
import copy
import logging
import threading

from phishing_watch.config import DEFAULT_COLLECTION
from phishing_watch.errors import SenderDeliveryError
from phishing_watch.errors import SnapshotDeliveryError
from phishing_watch.errors import SubscriptionSetupError
from phishing_watch.query import build_query
from phishing_watch.query import project_documents

DeliveryResult = collections.namedtuple('DeliveryResult',
                                        ['channel', 'ok', 'error'])

INITIALIZING = 'initializing'
ACTIVE = 'active'
ERROR = 'error'
CLOSED = 'closed'


def dispatch(batch, senders):
  """Deliver the batch to every sender in order, isolating failures.

  Args:
    batch (list): Projected phishing-attempt records.
    senders (list): Objects exposing `channel` and `deliver(batch)`.

  Returns:
    list: One DeliveryResult per sender, in registration order.
  """
  report = []
  for sender in senders:
    try:
      sender.deliver(copy.deepcopy(batch))
    except SenderDeliveryError as e:
      logging.error('Notification via %s failed: %s', sender.channel, e.reason)
      report.append(DeliveryResult(sender.channel, False, e.reason))
    except Exception as e:  # pylint: disable=broad-except
      logging.exception('Unexpected error notifying via %s', sender.channel)
      report.append(DeliveryResult(sender.channel, False, str(e)))
    else:
      report.append(DeliveryResult(sender.channel, True, None))
  delivered = sum(1 for result in report if result.ok)
  logging.info('Delivered %d phishing attempt(s) to %d/%d channel(s): %s',
               len(batch), delivered, len(report),
               ', '.join('{}={}'.format(r.channel, 'ok' if r.ok else 'failed')
                         for r in report))
  return report


class Subscription(object):
  """A live watch over a query that notifies the senders on every change.

  The first snapshot is the baseline read; it is only dispatched when
  `notify_initial` is set. Call close() (or use the handle as a context
  manager) to stop listening. Firestore stops a failed listener on its own
  thread without telling the callback, so long-running hosts should poll
  `is_active`, which reports such a stop through `on_error` once.
  """

  def __init__(self, query, senders, notify_initial=False, on_error=None):
    self.query = query
    self.senders = senders
    self.notify_initial = notify_initial
    self.on_error = on_error
    self.state = INITIALIZING
    self.snapshot_count = 0
    self.last_report = None
    self._watch = None
    # snapshots arrive on the listener thread, close() on the caller's
    self._lock = threading.RLock()

  def start(self):
    try:
      self._watch = self.query.on_snapshot(self._on_snapshot)
    except Exception as e:
      self.state = ERROR
      raise SubscriptionSetupError(
          'attaching the snapshot listener failed: {}'.format(e)) from e
    logging.info('Listening for phishing attempt changes')
    return self

  @property
  def is_active(self):
    """Whether the listener is still delivering snapshots."""
    with self._lock:
      if self.state in (CLOSED, ERROR):
        return False
      if self._watch is not None and not self._watch.is_active:
        self.handle_error(SnapshotDeliveryError(
            'listener stopped by the store after {} snapshot(s)'.format(
                self.snapshot_count)))
        return False
      return True

  def close(self):
    with self._lock:
      if self.state == CLOSED:
        return
      self.state = CLOSED
      watch_handle, self._watch = self._watch, None
    # unsubscribe() joins the listener thread; never call it holding the lock
    if watch_handle is not None:
      watch_handle.unsubscribe()
    logging.info('Stopped listening after %d snapshot(s)', self.snapshot_count)

  def __enter__(self):
    return self

  def __exit__(self, exc_type, exc_value, traceback):
    self.close()

  def _on_snapshot(self, documents, changes, read_time):
    with self._lock:
      if self.state == CLOSED:
        return
      self.snapshot_count += 1
      initial = self.snapshot_count == 1
      try:
        batch = project_documents(documents)
        self.state = ACTIVE
        if initial and not self.notify_initial:
          logging.info('Baseline snapshot of %d phishing attempt(s) at %s',
                       len(batch), read_time)
          return
        logging.info('Snapshot at %s: %d change(s), %d phishing attempt(s)',
                     read_time, len(changes or []), len(batch))
        self.last_report = dispatch(batch, self.senders)
      except Exception as e:  # pylint: disable=broad-except
        self.handle_error(SnapshotDeliveryError(
            'handling snapshot {} failed: {}'.format(self.snapshot_count, e)))

  def handle_error(self, error):
    """Record an error reported on the active subscription."""
    with self._lock:
      self.state = ERROR
    logging.error('Phishing attempt subscription error: %s', error)
    if self.on_error is not None:
      self.on_error(error)


def watch(db, senders, category=None, collection=DEFAULT_COLLECTION,
          notify_initial=False, on_error=None):
  """Start a Subscription over the (optionally filtered) collection."""
  try:
    query = build_query(db, category, collection=collection)
  except Exception as e:
    raise SubscriptionSetupError('building the query failed: {}'.format(
        e)) from e
  return Subscription(query, senders, notify_initial=notify_initial,
                      on_error=on_error).start()
