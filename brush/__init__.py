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

brush is a client for the Pastebin API, built on crackle.

Create a `brush.accounts.Developer` with your developer key, then paste a
`brush.pastes.Draft` with it:

    developer = Developer('0123456789abcdef')
    draft = Draft(content='print("hello")')
    paste = draft.paste(developer)
    print(paste.url)

To paste many drafts at once, queue them on a `crackle.requester.Requester`
with `Draft.queue()` and call its `fire_all()` method.

"""

__version__ = '1.0'
__date__ = '18 October 2026'


class BrushError(Exception):
    """Base class for errors raised by brush."""
    pass


class ValidationError(BrushError):
    """An Exception raised when a draft, paste or account is not fit for the
    operation requested of it."""
    pass


class CacheError(BrushError):
    """An Exception raised when a value is not in a `KeyCache`."""
    pass


class ReadError(BrushError, IOError):
    """An Exception raised when a file cannot be read."""
    pass
