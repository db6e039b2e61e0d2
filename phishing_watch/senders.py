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

"""Notification channels, each behind the same deliver(batch) capability.

Every sender either returns normally or raises SenderDeliveryError. A sender
with no configuration logs and returns, so a deployment can enable channels
one at a time.
"""

import base64
import collections
from email.message import EmailMessage
import logging

import google.auth
from google.auth import exceptions as auth_exceptions
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
import requests
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client as TwilioClient

from phishing_watch.errors import SenderDeliveryError

GMAIL_SCOPES = ['https://www.googleapis.com/auth/gmail.send']
GRAPH_SEND_MAIL_URL = 'https://graph.microsoft.com/v1.0/users/{}/sendMail'
REQUEST_TIMEOUT = 30
SOCIAL_STATUS_LIMIT = 500


def format_subject(batch):
  return 'Phishing alert: {} attempt(s) reported'.format(len(batch))


def format_category_counts(batch):
  counts = collections.Counter(
      record.get('category') or 'uncategorized' for record in batch)
  return ', '.join('{}: {}'.format(category, counts[category])
                   for category in sorted(counts))


def format_summary(batch):
  """Render the full plain-text message body shared by the email channels."""
  lines = [format_subject(batch), '']
  for record in batch:
    lines.append('- {} [{}]'.format(record['id'],
                                    record.get('category') or 'uncategorized'))
  return '\n'.join(lines) + '\n'


def format_short(batch, limit=None):
  """Render a one-line summary for SMS and social posts."""
  text = '{} ({})'.format(format_subject(batch), format_category_counts(batch))
  if limit is not None and len(text) > limit:
    text = text[:limit - 3] + '...'
  return text


class Sender(object):
  """Base class for a notification channel."""

  channel = None

  @property
  def configured(self):
    raise NotImplementedError

  def deliver(self, batch):
    """Deliver a notification about the batch, or raise SenderDeliveryError."""
    if not self.configured:
      logging.info('%s notifications are not configured, skipping',
                   self.channel)
      return
    if not batch:
      logging.info('No phishing attempts to report via %s', self.channel)
      return
    logging.info('Sending %s notification for %d phishing attempt(s)',
                 self.channel, len(batch))
    self.send(batch)

  def send(self, batch):
    raise NotImplementedError


class GmailSender(Sender):
  """Sends the summary email through the Gmail API."""

  channel = 'gmail'

  def __init__(self, sender, recipients, service=None):
    self.sender = sender
    self.recipients = list(recipients or [])
    self._service = service

  @property
  def configured(self):
    return bool(self.sender and self.recipients)

  def get_service(self):
    if not self._service:
      credentials, _ = google.auth.default(scopes=GMAIL_SCOPES)
      self._service = build('gmail', 'v1', credentials=credentials,
                            cache_discovery=False)
    return self._service

  def send(self, batch):
    message = EmailMessage()
    message['From'] = self.sender
    message['To'] = ', '.join(self.recipients)
    message['Subject'] = format_subject(batch)
    message.set_content(format_summary(batch))
    raw = base64.urlsafe_b64encode(message.as_bytes()).decode('ascii')
    try:
      self.get_service().users().messages().send(
          userId='me', body={'raw': raw}).execute()
    except (HttpError, auth_exceptions.GoogleAuthError) as e:
      raise SenderDeliveryError(self.channel, str(e)) from e


class OutlookSender(Sender):
  """Sends the summary email through the Microsoft Graph sendMail API."""

  channel = 'outlook'

  def __init__(self, access_token, sender, recipients):
    self.access_token = access_token
    self.sender = sender
    self.recipients = list(recipients or [])

  @property
  def configured(self):
    return bool(self.access_token and self.sender and self.recipients)

  def send(self, batch):
    payload = {
        'message': {
            'subject': format_subject(batch),
            'body': {'contentType': 'Text', 'content': format_summary(batch)},
            'toRecipients': [{'emailAddress': {'address': address}}
                             for address in self.recipients],
        },
        'saveToSentItems': False,
    }
    try:
      response = requests.post(
          GRAPH_SEND_MAIL_URL.format(self.sender), json=payload,
          headers={'Authorization': 'Bearer {}'.format(self.access_token)},
          timeout=REQUEST_TIMEOUT)
      response.raise_for_status()
    except requests.RequestException as e:
      raise SenderDeliveryError(self.channel, str(e)) from e


class SmsSender(Sender):
  """Texts a one-line summary to every recipient through Twilio."""

  channel = 'sms'

  def __init__(self, account_sid, auth_token, from_number, recipients,
               client=None):
    self.account_sid = account_sid
    self.auth_token = auth_token
    self.from_number = from_number
    self.recipients = list(recipients or [])
    self._client = client

  @property
  def configured(self):
    return bool(self.account_sid and self.auth_token and self.from_number and
                self.recipients)

  def get_client(self):
    if not self._client:
      self._client = TwilioClient(self.account_sid, self.auth_token)
    return self._client

  def send(self, batch):
    body = format_short(batch)
    failed = []
    for number in self.recipients:
      try:
        message = self.get_client().messages.create(
            body=body, from_=self.from_number, to=number)
        logging.info('SMS sent to %s, sid %s', number, message.sid)
      except TwilioRestException as e:
        logging.error('Failed to send SMS to %s: %s', number, e)
        failed.append(number)
    if failed:
      raise SenderDeliveryError(
          self.channel, 'failed recipients: {}'.format(', '.join(failed)))


class SocialMediaSender(Sender):
  """Posts a status to a Mastodon-compatible statuses endpoint."""

  channel = 'social'

  def __init__(self, status_url, access_token):
    self.status_url = status_url
    self.access_token = access_token

  @property
  def configured(self):
    return bool(self.status_url and self.access_token)

  def send(self, batch):
    try:
      response = requests.post(
          self.status_url,
          data={'status': format_short(batch, limit=SOCIAL_STATUS_LIMIT)},
          headers={'Authorization': 'Bearer {}'.format(self.access_token)},
          timeout=REQUEST_TIMEOUT)
      response.raise_for_status()
    except requests.RequestException as e:
      raise SenderDeliveryError(self.channel, str(e)) from e


def build_senders(config):
  """Return the configured channels in their fixed dispatch order."""
  return [
      GmailSender(config.gmail_sender, config.gmail_recipients),
      OutlookSender(config.outlook_access_token, config.outlook_sender,
                    config.outlook_recipients),
      SmsSender(config.twilio_account_sid, config.twilio_auth_token,
                config.twilio_from_number, config.sms_recipients),
      SocialMediaSender(config.social_status_url, config.social_access_token),
  ]
