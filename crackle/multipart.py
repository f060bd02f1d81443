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

from email.generator import BytesGenerator
from email.message import Message
from email.mime.multipart import MIMEMultipart
from email.policy import HTTP
from io import BytesIO


class FormDataGenerator(BytesGenerator):

    """Writes form-data parts whose payloads are raw bytes, untouched."""

    def __init__(self, outfp, mangle_from_=False, maxheaderlen=None, write_headers=True, policy=HTTP):
        self.write_headers = write_headers
        BytesGenerator.__init__(self, outfp, mangle_from_, maxheaderlen, policy=policy)

    def _handle_text(self, msg):
        payload = msg.get_payload()
        if isinstance(payload, bytes):
            self._fp.write(payload)
        else:
            BytesGenerator._handle_text(self, msg)

    _writeBody = _handle_text

    def _write_headers(self, msg):
        if self.write_headers:
            BytesGenerator._write_headers(self, msg)


class FormDataMessage(MIMEMultipart):
    def __init__(self):
        MIMEMultipart.__init__(self, 'form-data', policy=HTTP)

    def as_bytes(self, unixfrom=False, write_headers=True):
        fp = BytesIO()
        g = FormDataGenerator(fp, write_headers=write_headers)
        g.flatten(self, unixfrom=unixfrom)
        return fp.getvalue()


class FieldMessage(Message):
    def __init__(self, name, value):
        Message.__init__(self, policy=HTTP)
        self.add_header('Content-Disposition', 'form-data', name=name)
        if not isinstance(value, bytes):
            value = str(value).encode('utf-8')
        self.set_payload(value)


class FileMessage(Message):
    def __init__(self, name, upload):
        Message.__init__(self, policy=HTTP)
        self.add_header('Content-Disposition', 'form-data', name=name,
            filename=upload.name or name)
        self['Content-Type'] = upload.mime_type
        self.set_payload(upload.content)


def encode_form(variables, files=()):
    """Encodes form fields as a ``multipart/form-data`` request body.

    Parameter `variables` is a sequence of ``(name, value)`` pairs; values are
    sent as UTF-8 text. Parameter `files` is a sequence of ``(name, upload)``
    pairs, where each upload has `name`, `mime_type` and `content` (bytes)
    attributes, like `crackle.fields.UploadFile`.

    Returns a tuple of the Content-Type header value (including the boundary)
    and the body as bytes.

    """
    msg = FormDataMessage()
    for name, value in variables:
        msg.attach(FieldMessage(name, value))
    for name, upload in files:
        msg.attach(FileMessage(name, upload))

    # Do this ahead of getting headers, since the boundary is not
    # assigned until we bake the multipart message:
    body = msg.as_bytes(write_headers=False)
    return str(msg['Content-Type']), body
