# Copyright (c) 2009-2010 Six Apart Ltd.
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# * Redistributions of source code must retain the above copyright notice,
#   this list of conditions and the following disclaimer.
#
# * Redistributions in binary form must reproduce the above copyright notice,
#   this list of conditions and the following disclaimer in the documentation
#   and/or other materials provided with the distribution.
#
# * Neither the name of Six Apart Ltd. nor the names of its contributors may
#   be used to endorse or promote products derived from this software without
#   specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

"""

Drafts and pastes.

A `Draft` is a paste that has not been sent to Pastebin yet. Pasting it
returns a `Paste`, which knows its key and when it expires.

"""

import logging
import os
import time

from crackle.requester import RequestError
from crackle.requests import Request

from brush import BrushError, ReadError, ValidationError
from brush.api import ApiRequest
from brush.results import ResultError

log = logging.getLogger(__name__)

WEB_URL = 'https://pastebin.com/'
RAW_URL = 'https://pastebin.com/raw/'


class Visibility(object):
    PUBLIC = 0
    UNLISTED = 1
    PRIVATE = 2

    ALL = (PUBLIC, UNLISTED, PRIVATE)


class Expiry(object):

    """Pastebin's expiry codes."""

    TEN_MINUTES = '10M'
    ONE_HOUR = '1H'
    ONE_DAY = '1D'
    ONE_WEEK = '1W'
    TWO_WEEKS = '2W'
    ONE_MONTH = '1M'
    NEVER = 'N'

    OFFSETS = {
        TEN_MINUTES: 60 * 10,
        ONE_HOUR: 60 * 60,
        ONE_DAY: 60 * 60 * 24,
        ONE_WEEK: 60 * 60 * 24 * 7,
        TWO_WEEKS: 60 * 60 * 24 * 7 * 2,
        # Pastebin's month is four weeks.
        ONE_MONTH: 60 * 60 * 24 * 28,
        NEVER: 0,
    }

    LABELS = {
        TEN_MINUTES: '10 minutes',
        ONE_HOUR: '1 hour',
        ONE_DAY: '1 day',
        ONE_WEEK: '1 week',
        TWO_WEEKS: '2 weeks',
        ONE_MONTH: '1 month',
        NEVER: 'Never',
    }

    @classmethod
    def offset(cls, expiry):
        """Returns the number of seconds a paste with `expiry` lives for, or
        0 if it never expires."""
        try:
            return cls.OFFSETS[expiry]
        except KeyError:
            raise ValidationError('Unrecognised expiry: %r' % expiry)

    @classmethod
    def label(cls, expiry):
        try:
            return cls.LABELS[expiry]
        except KeyError:
            raise ValidationError('Unrecognised expiry: %r' % expiry)


class Draft(object):

    """A paste waiting to be sent to Pastebin."""

    endpoint = 'api_post.php'

    def __init__(self, content=None, title='Untitled', format='text',
                 visibility=Visibility.PUBLIC, expiry=Expiry.NEVER, owner=None):
        self.content = content
        self.title = title
        self.format = format
        self.visibility = visibility
        self.expiry = expiry
        self.owner = owner

    def __repr__(self):
        return '<Draft %r>' % self.title

    @classmethod
    def from_file(cls, path):
        """Creates a draft with the contents of the file at `path`, titled
        with the file's name."""
        try:
            with open(path, encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise ReadError('Cannot read from %r: %s' % (path, exc))
        return cls(content, title=os.path.basename(path))

    def validate(self):
        """Raises `brush.ValidationError` if the draft cannot be pasted."""
        if not self.content:
            raise ValidationError('The paste must have some content')
        if self.visibility not in Visibility.ALL:
            raise ValidationError('Unrecognised visibility: %r' % self.visibility)
        Expiry.offset(self.expiry)
        if self.visibility == Visibility.PRIVATE and self.owner is None:
            raise ValidationError('Private pastes must have an owner set. '
                'Change the visibility, or specify the owner.')

    def request(self, developer):
        """Returns the `brush.api.ApiRequest` that pastes this draft."""
        self.validate()
        pastebin = ApiRequest(developer, self.endpoint, option='paste')
        variables = pastebin.variables
        variables.set('api_paste_name', self.title)
        variables.set('api_paste_code', self.content)
        variables.set('api_paste_private', self.visibility)
        variables.set('api_paste_format', self.format)
        variables.set('api_paste_expire_date', self.expiry)
        if self.owner is not None:
            self.owner.sign(variables, developer)
        return pastebin

    def paste(self, developer):
        """Sends the draft to Pastebin, returning the new `Paste`.

        Raises `brush.results.ResultError` if Pastebin rejects the draft or
        cannot be reached.

        """
        url = self.request(developer).send().unwrap()
        return Paste.from_pasted(url, self)

    def queue(self, requester, developer, callback):
        """Queues the draft to be pasted by `requester`.

        Once it has been sent, `callback` is called with the result and the
        new `Paste`, or None in its place if pasting failed.

        """
        def pasted(result):
            paste = None
            if result.ok:
                paste = Paste.from_pasted(result.body, self)
            callback(result, paste)

        self.request(developer).queue(requester, pasted)


class Paste(object):

    """A paste on Pastebin."""

    raw_endpoint = 'api_raw.php'
    delete_endpoint = 'api_post.php'

    def __init__(self, key, title='Untitled', format='text', visibility=Visibility.PUBLIC,
                 owner=None, content=None, date=0, size=0, hits=0, expires=0):
        self.key = key
        self.title = title
        self.format = format
        self.visibility = visibility
        self.owner = owner
        self.content = content
        self.date = date
        self.size = size
        self.hits = hits
        # Unix time, or 0 if the paste never expires.
        self.expires = expires

    def __repr__(self):
        return '<Paste %s>' % self.key

    @classmethod
    def from_pasted(cls, url, draft):
        """Creates the paste that Pastebin made from `draft`, given the
        paste's `url`."""
        url = url.strip().rstrip('/')
        if '/' not in url:
            raise BrushError('Invalid paste URL: %r' % url)
        date = int(time.time())
        offset = Expiry.offset(draft.expiry)
        return cls(url.rsplit('/', 1)[1],
            title=draft.title,
            format=draft.format,
            visibility=draft.visibility,
            owner=draft.owner,
            content=draft.content,
            date=date,
            size=len(draft.content.encode('utf-8')),
            hits=0,
            expires=date + offset if offset else 0)

    @property
    def url(self):
        return WEB_URL + self.key

    @property
    def is_immortal(self):
        return self.expires == 0

    @property
    def expires_in(self):
        """Seconds until the paste expires, or 0 if it never does."""
        if self.is_immortal:
            return 0
        return self.expires - int(time.time())

    def fetch_content(self, developer=None):
        """Returns the paste's content, fetching it from Pastebin the first
        time.

        Private pastes are fetched through the API, which requires a
        `developer` and an owner.

        """
        if self.content is None:
            if self.visibility == Visibility.PRIVATE:
                self.content = self._private_content(developer)
            else:
                self.content = self._public_content()
        return self.content

    def _public_content(self):
        request = Request(RAW_URL + self.key)
        try:
            return request.response.text
        except RequestError as exc:
            raise ResultError('Failed to fetch %s: %s' % (request.url, exc))

    def _private_content(self, developer):
        if developer is None:
            raise ValidationError('A developer must be given to fetch the content '
                'of a private paste')
        if self.owner is None:
            raise ValidationError('A private paste must have an owner for its '
                'content to be fetched')
        pastebin = ApiRequest(developer, self.raw_endpoint, option='show_paste')
        pastebin.variables.set('api_paste_key', self.key)
        self.owner.sign(pastebin.variables, developer)
        return pastebin.send().unwrap()

    def delete(self, developer):
        """Deletes the paste from Pastebin.

        Only pastes with an owner can be deleted.

        """
        if self.owner is None:
            raise ValidationError('A paste must have an owner to be deleted')
        pastebin = ApiRequest(developer, self.delete_endpoint, option='delete')
        self.owner.sign(pastebin.variables, developer)
        pastebin.variables.set('api_paste_key', self.key)
        pastebin.send().unwrap()
        log.info('Deleted %r', self)
