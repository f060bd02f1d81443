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

The outcome of a Pastebin API request.

Pastebin does not use HTTP status codes, so an API request can fail in two
ways: the request never reaches Pastebin (`TransportError`), or Pastebin
rejects it with a ``Bad API request`` body (`ApiError`). Either way the
outcome is returned rather than raised, so a callback deciding what to do
next doesn't need an exception handler. Call `unwrap()` to get the body of a
`Success` or raise `ResultError` otherwise.

"""

from collections import namedtuple

from brush import BrushError


class ResultError(BrushError):
    """An Exception raised when unwrapping a failed result."""
    pass


class Success(namedtuple('Success', 'body')):

    __slots__ = ()
    ok = True

    def unwrap(self):
        return self.body


class ApiError(namedtuple('ApiError', 'message')):

    __slots__ = ()
    ok = False

    def unwrap(self):
        raise ResultError('Pastebin API request failed: %s' % self.message)


class TransportError(namedtuple('TransportError', 'cause')):

    __slots__ = ()
    ok = False

    def unwrap(self):
        raise ResultError('Request to Pastebin failed: %s' % self.cause)
