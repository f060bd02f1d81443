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

Settings read from an INI file.

The file has a ``[brush]`` section:

    [brush]
    developer_key = 0123456789abcdef
    username = someone
    password = secret
    parallel_limit = 4
    timeout = 30

Only `developer_key` is required. `user_key` may be given in place of the
user name and password.

"""

import configparser
import logging

from crackle.requester import Requester

from brush import ReadError, ValidationError
from brush.accounts import Account, Credentials, Developer, KeyCache
from brush.api import ApiRequest

log = logging.getLogger(__name__)

SECTION = 'brush'


class Configuration(object):

    def __init__(self, developer_key=None, username=None, password=None, user_key=None,
                 parallel_limit=None, timeout=None):
        self.developer_key = developer_key
        self.username = username
        self.password = password
        self.user_key = user_key
        self.parallel_limit = parallel_limit
        self.timeout = timeout
        self.cache = KeyCache()

    @classmethod
    def from_file(cls, path):
        """Reads the configuration from the INI file at `path`.

        Raises `brush.ReadError` if the file cannot be read, or
        `brush.ValidationError` if it has no ``[brush]`` section or a
        numeric setting is not a number.

        """
        parser = configparser.ConfigParser()
        try:
            with open(path, encoding='utf-8') as f:
                parser.read_file(f)
        except OSError as exc:
            raise ReadError('Cannot read configuration from %r: %s' % (path, exc))
        except configparser.Error as exc:
            raise ValidationError('Invalid configuration in %r: %s' % (path, exc))
        if not parser.has_section(SECTION):
            raise ValidationError('%r has no [%s] section' % (path, SECTION))

        section = parser[SECTION]
        try:
            parallel_limit = section.getint('parallel_limit')
            timeout = section.getfloat('timeout')
        except ValueError as exc:
            raise ValidationError('Invalid configuration in %r: %s' % (path, exc))
        log.debug('Read configuration from %s', path)
        return cls(developer_key=section.get('developer_key'),
            username=section.get('username'),
            password=section.get('password'),
            user_key=section.get('user_key'),
            parallel_limit=parallel_limit,
            timeout=timeout)

    def developer(self):
        if not self.developer_key:
            raise ValidationError('No developer key is configured')
        return Developer(self.developer_key)

    def account(self):
        """Returns the configured `brush.accounts.Account`, or None if
        neither a user key nor a user name and password are configured."""
        if self.user_key:
            return Account(self.user_key, self.cache)
        if self.username and self.password:
            return Account(Credentials(self.username, self.password), self.cache)
        return None

    def requester(self):
        return Requester(self.parallel_limit)

    def api_request(self, endpoint, option=None):
        return ApiRequest(self.developer(), endpoint, option, timeout=self.timeout)
