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

"""Environment-driven configuration, loaded once per process."""

import collections
import os

DEFAULT_COLLECTION = 'phishing_attempts'

Config = collections.namedtuple('Config', [
    'collection',
    'notify_on_initial_snapshot',
    'gmail_sender',
    'gmail_recipients',
    'outlook_access_token',
    'outlook_sender',
    'outlook_recipients',
    'twilio_account_sid',
    'twilio_auth_token',
    'twilio_from_number',
    'sms_recipients',
    'social_status_url',
    'social_access_token',
])


def load_config(environ=None):
  """Read the configuration from environment variables.

  Args:
    environ (dict): Mapping to read from, defaults to os.environ.

  Returns:
    Config: Unset channel settings are None (or an empty list for recipients).
  """
  if environ is None:
    environ = os.environ
  return Config(
      collection=environ.get('PHISHING_COLLECTION') or DEFAULT_COLLECTION,
      notify_on_initial_snapshot=parse_bool(
          environ.get('NOTIFY_ON_INITIAL_SNAPSHOT')),
      gmail_sender=environ.get('GMAIL_SENDER'),
      gmail_recipients=parse_list(environ.get('GMAIL_RECIPIENTS')),
      outlook_access_token=environ.get('OUTLOOK_ACCESS_TOKEN'),
      outlook_sender=environ.get('OUTLOOK_SENDER'),
      outlook_recipients=parse_list(environ.get('OUTLOOK_RECIPIENTS')),
      twilio_account_sid=environ.get('TWILIO_ACCOUNT_SID'),
      twilio_auth_token=environ.get('TWILIO_AUTH_TOKEN'),
      twilio_from_number=environ.get('TWILIO_FROM_NUMBER'),
      sms_recipients=parse_list(environ.get('SMS_RECIPIENTS')),
      social_status_url=environ.get('SOCIAL_STATUS_URL'),
      social_access_token=environ.get('SOCIAL_ACCESS_TOKEN'),
  )


def parse_list(value):
  """Split a comma-separated variable, dropping blanks."""
  if not value:
    return []
  return [item.strip() for item in value.split(',') if item.strip()]


def parse_bool(value, default=False):
  if value is None or not value.strip():
    return default
  return value.strip().lower() in ('1', 'true', 'yes', 'on')
