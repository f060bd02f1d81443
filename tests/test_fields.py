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

import email
import os
import tempfile
import unittest

from crackle.fields import (Fields, Parameters, UploadFile, FormBody, RawBody,
    FileReadError)
from crackle.multipart import encode_form


class TestFields(unittest.TestCase):

    def test_nested(self):
        fields = Fields({'user': {'name': 'ann', 'prefs': {'lang': 'en'}}, 'page': 2})
        self.assertEqual(fields.pairs(), [
            ('user[name]', 'ann'),
            ('user[prefs][lang]', 'en'),
            ('page', 2),
        ])

    def test_parameters(self):
        params = Parameters([('q', 'a&b c'), ('n', 1)])
        self.assertEqual(params.query_string, 'q=a%26b+c&n=1')
        params.parse('x=&y=2')
        self.assertEqual(params['x'], '')
        self.assertEqual(params['y'], '2')
        del params['q']
        self.assertNotIn('q', params)

    def test_upload_from_path(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, 'notes.txt')
            with open(path, 'wb') as f:
                f.write(b'some notes')
            upload = UploadFile.from_path(path)
            self.assertEqual(upload.name, 'notes.txt')
            self.assertEqual(upload.mime_type, 'text/plain')
            self.assertEqual(upload.content, b'some notes')

            self.assertRaises(FileReadError, UploadFile.from_path, directory)
            self.assertRaises(FileReadError, UploadFile.from_path,
                os.path.join(directory, 'missing.txt'))

    def test_raw_body(self):
        self.assertEqual(RawBody('{}', 'application/json').encode(),
            ('application/json', b'{}'))


class TestMultipart(unittest.TestCase):

    def parse(self, content_type, body):
        return email.message_from_bytes(
            b'Content-Type: ' + content_type.encode('ascii') + b'\r\n\r\n' + body)

    def test_form(self):
        upload = UploadFile(b'\x00\xffbinary', 'blob.bin')
        content_type, body = encode_form([('title', 'Caf\xe9'), ('count', 3)],
            [('file', upload)])

        message = self.parse(content_type, body)
        self.assertTrue(message.is_multipart())
        self.assertEqual(message.get_content_type(), 'multipart/form-data')
        title, count, blob = message.get_payload()

        self.assertEqual(title.get_param('name', header='content-disposition'), 'title')
        self.assertEqual(title.get_payload(decode=True), 'Caf\xe9'.encode('utf-8'))
        self.assertEqual(count.get_payload(decode=True), b'3')
        self.assertEqual(blob.get_filename(), 'blob.bin')
        self.assertEqual(blob.get_content_type(), 'application/octet-stream')
        self.assertEqual(blob.get_payload(decode=True), b'\x00\xffbinary')

    def test_body_untouched(self):
        content = b'line one\nFrom the top\r\nline three'
        content_type, body = encode_form([], [('file', UploadFile(content, 'a.txt', 'text/plain'))])
        self.assertIn(b'\r\n\r\n' + content + b'\r\n--', body)
        self.assertNotIn(b'MIME-Version', body)

    def test_form_body_reads_paths(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, 'data.json')
            with open(path, 'wb') as f:
                f.write(b'{"a": 1}')
            content_type, body = FormBody({'kind': 'json'}, {'upload': path}).encode()

        self.assertTrue(content_type.startswith('multipart/form-data; boundary='))
        self.assertIn(b'filename="data.json"', body)
        self.assertIn(b'Content-Type: application/json', body)
        self.assertIn(b'{"a": 1}', body)


if __name__ == '__main__':
    unittest.main()
