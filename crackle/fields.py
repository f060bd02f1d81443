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

Request fields and bodies: query string parameters, form variables, uploaded
files, and the body types a `crackle.requests.Request` can carry.

"""

import mimetypes
import os
from urllib.parse import parse_qsl, quote_plus

from crackle import multipart


class FileReadError(IOError):
    """An Exception raised when a file to upload cannot be read."""
    pass


class Fields(object):

    """An ordered collection of named values.

    Values may be nested mappings, which are flattened into
    ``name[key]`` pairs by `pairs()`.

    """

    def __init__(self, fields=None):
        self._fields = {}
        if fields is not None:
            self.set_all(fields)

    def __len__(self):
        return len(self._fields)

    def __iter__(self):
        return iter(self._fields)

    def __contains__(self, name):
        return name in self._fields

    def __getitem__(self, name):
        return self._fields[name]

    def __setitem__(self, name, value):
        self._fields[name] = value

    def __delitem__(self, name):
        del self._fields[name]

    def items(self):
        return self._fields.items()

    def set(self, name, value):
        self._fields[name] = value

    def set_all(self, fields):
        if hasattr(fields, 'items'):
            fields = fields.items()
        for name, value in fields:
            self.set(name, value)

    def pairs(self):
        """Returns the fields as a flat list of ``(name, value)`` tuples."""
        pairs = []
        for name, value in self._fields.items():
            if isinstance(value, dict):
                self._add_pairs(pairs, value, name)
            else:
                pairs.append((name, value))
        return pairs

    @classmethod
    def _add_pairs(cls, pairs, fields, prefix):
        for key, value in fields.items():
            name = '%s[%s]' % (prefix, key)
            if isinstance(value, dict):
                cls._add_pairs(pairs, value, name)
            else:
                pairs.append((name, value))


class Parameters(Fields):

    """Fields sent in a URL's query string."""

    @property
    def query_string(self):
        return '&'.join('%s=%s' % (quote_plus(str(name)), quote_plus(str(value)))
            for name, value in self.pairs())

    def parse(self, query_string):
        for name, value in parse_qsl(query_string, keep_blank_values=True):
            self.set(name, value)


class UploadFile(object):

    """A file to send in a request body."""

    def __init__(self, content, name=None, mime_type='application/octet-stream'):
        if not isinstance(content, bytes):
            content = str(content).encode('utf-8')
        self.content = content
        self.name = name
        self.mime_type = mime_type

    @classmethod
    def from_path(cls, path):
        """Reads the file at `path`, guessing its MIME type from its name.

        Raises `FileReadError` if `path` is not a readable file.

        """
        if not os.path.isfile(path):
            raise FileReadError('The path must be the path of a file: %s' % path)
        try:
            with open(path, 'rb') as f:
                content = f.read()
        except OSError as exc:
            raise FileReadError('The file %s cannot be read: %s' % (path, exc))
        mime_type = mimetypes.guess_type(path)[0] or 'application/octet-stream'
        return cls(content, os.path.basename(path), mime_type)


class FormBody(object):

    """A ``multipart/form-data`` body of form variables and files.

    Values in `files` may be `UploadFile` instances or paths of files to read
    when the body is encoded.

    """

    def __init__(self, variables=None, files=None):
        self.variables = Fields(variables)
        self.files = Fields(files)

    def encode(self):
        """Returns the Content-Type and the encoded body as bytes."""
        files = []
        for name, value in self.files.pairs():
            if not isinstance(value, UploadFile):
                value = UploadFile.from_path(value)
            files.append((name, value))
        return multipart.encode_form(self.variables.pairs(), files)


class RawBody(object):

    """A body sent exactly as given."""

    def __init__(self, content, content_type=None):
        if not isinstance(content, bytes):
            content = str(content).encode('utf-8')
        self.content = content
        self.content_type = content_type

    def encode(self):
        return self.content_type, self.content


class FileBody(object):

    """A single file sent as the whole body, as a PUT upload is."""

    def __init__(self, upload):
        if not isinstance(upload, UploadFile):
            upload = UploadFile.from_path(upload)
        self.upload = upload

    def encode(self):
        return self.upload.mime_type, self.upload.content
