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

import collections.abc
import json
import logging

import functions_framework

from phishing_watch.context import create_context
from phishing_watch.errors import SnapshotDeliveryError
from phishing_watch.notifier import dispatch
from phishing_watch.notifier import watch
from phishing_watch.query import build_query
from phishing_watch.query import read_batch

JSON_HEADERS = {'Content-Type': 'application/json'}

app_context = None


def get_context():
  global app_context
  if not app_context:
    app_context = create_context()
  return app_context


@functions_framework.http
def get_phishing_attempts(request):
  """HTTP Cloud Function entry point, answering a GET with the current records.

  The matching records are read once, every notification channel is told
  about them, and the same records are returned as a JSON array. Channel
  failures are logged and never change the response.

  Args:
    request (flask.Request): May carry a `category` query parameter.

  Returns:
    tuple: Response body, status code and headers.
  """
  category = request.args.get('category')
  try:
    ctx = get_context()
    query = build_query(ctx.db, category, collection=ctx.config.collection)
  except Exception:  # pylint: disable=broad-except
    logging.exception('Error initializing phishing attempt query')
    return error_response()

  try:
    batch = read_batch(query)
  except SnapshotDeliveryError:
    logging.exception('Error fetching phishing attempts (category=%r)',
                      category)
    return error_response()

  try:
    body = json.dumps(batch, default=json_default)
  except (TypeError, ValueError):
    logging.exception('Error serializing phishing attempts (category=%r)',
                      category)
    return error_response()

  dispatch(batch, ctx.senders)
  return body, 200, JSON_HEADERS


def notify_phishing_change(data, context):
  """Cloud Function entry point, triggered by a write to a phishing attempt.

  Re-reads every category view the write touched (the new category and, for
  moves and deletions, the old one) and notifies every channel about each.
  Nothing is returned to a caller.

  Args:
    data (dict): The Firestore event payload.
    context (google.cloud.functions.Context): Metadata for the event.
  """
  categories = changed_categories(data)
  if not categories:
    logging.warning('Phishing attempt %s has no string category, skipping',
                    context.resource)
    return

  ctx = get_context()
  for category in categories:
    logging.info('Phishing attempt %s changed, notifying for category %r',
                 context.resource, category)
    query = build_query(ctx.db, category, collection=ctx.config.collection)
    try:
      batch = read_batch(query)
    except SnapshotDeliveryError:
      logging.exception('Error fetching phishing attempts for %s (category=%r)',
                        context.resource, category)
      raise
    dispatch(batch, ctx.senders)


def watch_phishing_attempts(category=None, on_error=None):
  """Start a long-lived listener for hosts that keep a process running.

  The caller owns the returned Subscription, should poll its `is_active` to
  notice a listener the store stopped, and must close() it.
  """
  ctx = get_context()
  return watch(ctx.db, ctx.senders, category=category,
               collection=ctx.config.collection,
               notify_initial=ctx.config.notify_on_initial_snapshot,
               on_error=on_error)


def changed_categories(data):
  """Categories whose views a write affects, new value first.

  A document without any category field only appears in the unfiltered view,
  reported as None. Non-string or empty categories match no filter and are
  left out.
  """
  categories = []
  has_category = False
  for key in ('value', 'oldValue'):
    fields = (data.get(key) or {}).get('fields') or {}
    if 'category' not in fields:
      continue
    has_category = True
    category = fields['category'].get('stringValue')
    if category and category not in categories:
      categories.append(category)
  if not has_category:
    return [None]
  return categories


def error_response():
  return (json.dumps({'error': 'Internal Server Error'}), 500, JSON_HEADERS)


def json_default(value):
  """Render Firestore values that json cannot encode natively."""
  if hasattr(value, 'isoformat'):
    return value.isoformat()
  if hasattr(value, 'latitude') and hasattr(value, 'longitude'):
    return {'latitude': value.latitude, 'longitude': value.longitude}
  if hasattr(value, 'path'):
    return value.path
  if isinstance(value, bytes):
    return value.decode('utf-8', 'replace')
  if isinstance(value, collections.abc.Sequence):
    return list(value)
  raise TypeError('Cannot serialize {!r}'.format(value))
