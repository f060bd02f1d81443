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

Pastebin developers and user accounts.

Every API request is signed with a developer key. Requests acting on a
user's pastes are also signed with that user's key, which Pastebin hands
out in exchange for the user's name and password.

"""

import logging

from brush import CacheError
from brush.api import ApiRequest

log = logging.getLogger(__name__)


class Developer(object):

    """The holder of a Pastebin developer key."""

    def __init__(self, key):
        self.key = key

    def __repr__(self):
        return '<Developer>'

    def sign(self, variables):
        variables.set('api_dev_key', self.key)


class Credentials(object):

    """A Pastebin user name and password."""

    def __init__(self, username, password):
        self.username = username
        self.password = password

    def __repr__(self):
        return '<Credentials %s>' % self.username

    def sign(self, variables):
        variables.set('api_user_name', self.username)
        variables.set('api_user_password', self.password)


class KeyCache(object):

    """User keys fetched from Pastebin, by user name.

    Share one `KeyCache` between `Account` instances to avoid logging in
    more than once for the same user.

    """

    def __init__(self):
        self._keys = {}

    def __len__(self):
        return len(self._keys)

    def __contains__(self, username):
        return username in self._keys

    def get(self, username):
        try:
            return self._keys[username]
        except KeyError:
            raise CacheError('No key is stored for the user %r' % username)

    def set(self, username, key):
        self._keys[username] = key


class Account(object):

    """A Pastebin user account.

    An account is created from either a user key, or a `Credentials`
    instance. In the latter case the user key is fetched from Pastebin the
    first time it is needed, unless `cache` already holds it.

    """

    endpoint = 'api_login.php'

    def __init__(self, mechanism, cache=None):
        if cache is None:
            cache = KeyCache()
        self.cache = cache
        self.credentials = None
        self._key = None

        if isinstance(mechanism, str):
            self._key = mechanism
        elif mechanism.username in cache:
            self._key = cache.get(mechanism.username)
        else:
            self.credentials = mechanism

    def __repr__(self):
        if self.credentials is not None:
            return '<Account %s>' % self.credentials.username
        return '<Account>'

    def key(self, developer):
        """Returns the user key, fetching it from Pastebin if necessary.

        Raises `brush.results.ResultError` if Pastebin refuses the
        credentials or cannot be reached.

        """
        if self._key is None:
            key = self.fetch_key(developer)
            self.cache.set(self.credentials.username, key)
            self._key = key
        return self._key

    def fetch_key(self, developer):
        log.debug('Fetching the user key for %r', self)
        request = ApiRequest(developer, self.endpoint)
        self.credentials.sign(request.variables)
        # The entire body is the key.
        return request.send().unwrap()

    def sign(self, variables, developer):
        variables.set('api_user_key', self.key(developer))
