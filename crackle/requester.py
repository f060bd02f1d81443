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

The requester runs queued requests in parallel through one multiplex engine,
keeping at most a fixed number of them in flight and feeding in the next
queued request as each one finishes.

"""

from collections import deque
import logging

from crackle.multi import Multi, M_CALL_MULTI_PERFORM, M_OK, multi_strerror

log = logging.getLogger(__name__)


class RequestError(Exception):
    """An Exception raised when a request cannot be queued or performed, or
    when the multiplex engine fails while a `Requester` is firing."""
    def __init__(self, message, code=None):
        self.code = code
        super(RequestError, self).__init__(message)


class Requester(object):

    """Manages parallel execution of HTTP requests.

    Requests are admitted in the order they were queued (FIFO) and complete in
    whatever order the network allows. Anything with the request contract can
    be queued:

    * a `finalize()` method, called once just before the request starts
    * a `handle` attribute, the `crackle.multi.Handle` the engine drives
    * a `complete(result)` method, called once with the handle's result code

    `crackle.requests.Request` is the usual implementation.

    """

    multi_class = Multi
    default_parallel_limit = 20

    def __init__(self, parallel_limit=None):
        """Configures the `Requester` to run at most `parallel_limit` requests
        at once (20 if not given), and allocates its multiplex engine."""
        if parallel_limit is None:
            parallel_limit = self.default_parallel_limit
        parallel_limit = int(parallel_limit)
        if parallel_limit < 1:
            raise ValueError('The parallel limit must be at least 1, not %d' % parallel_limit)
        self.parallel_limit = parallel_limit
        self._queue = deque()
        self._executing = {}
        self._multi = self.multi_class()

    def __len__(self):
        """Returns the number of requests waiting to be admitted."""
        return len(self._queue)

    @property
    def executing(self):
        """The number of requests currently in flight."""
        return len(self._executing)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        # Abandon anything in flight if we're leaving because of an error.
        self.close(force=exc_type is not None)

    def queue(self, request):
        """Schedules `request` for execution by the next `fire_all()` call.

        May also be called from a request's callback while `fire_all()` is
        running; the new request is run before `fire_all()` returns.

        Raises `TypeError` if `request` does not have the request contract, or
        `RequestError` if it has already been fired, or is already queued or
        running. If the request has a `validate()` method, it is called here so
        that malformed requests are rejected now rather than in the middle of
        `fire_all()`.

        """
        for name in ('finalize', 'complete'):
            if not callable(getattr(request, name, None)):
                raise TypeError('Cannot queue %r: it has no %s() method' % (request, name))
        if not hasattr(request, 'handle'):
            raise TypeError('Cannot queue %r: it has no handle' % (request,))
        is_fired = getattr(request, 'is_fired', None)
        if is_fired is not None and is_fired():
            raise RequestError('Cannot queue %r: it has already been fired' % (request,))
        if (any(queued is request for queued in self._queue)
                or request.handle in self._executing
                or getattr(request.handle, 'multi', None) is not None):
            raise RequestError('Cannot queue %r: it is already queued or running' % (request,))
        validate = getattr(request, 'validate', None)
        if validate is not None:
            validate()
        self._queue.append(request)

    def queue_all(self, requests):
        """Schedules each of `requests` for execution, in order."""
        for request in requests:
            self.queue(request)

    def fire_all(self):
        """Executes the queue, returning once every request has completed.

        A request that fails (no route to the host, a timeout and so on) does
        not stop the others; its failure is handed to its own `complete()`.
        If the multiplex engine itself fails, a `RequestError` is raised and
        this `Requester` should not be used again.

        Exceptions raised by request callbacks propagate out of `fire_all()`.
        The requests still queued or in flight stay where they are.

        """
        if self._multi is None:
            raise RequestError('This requester has been closed')

        log.info('Firing %d requests, up to %d at a time', len(self._queue),
            self.parallel_limit)

        # Fill the engine with initial requests, up to the parallel limit.
        self._add(min(len(self._queue), self.parallel_limit))

        multi = self._multi
        running = True
        while running:
            status, running = multi.perform()
            while status == M_CALL_MULTI_PERFORM:
                status, running = multi.perform()

            if status != M_OK:
                log.error('Multiplex engine failed with %d executing and %d queued: %s',
                    len(self._executing), len(self._queue), multi_strerror(status))
                raise RequestError(multi_strerror(status), status)

            message = multi.info_read()
            while message is not None:
                self._finished(*message)
                # Do at least one more pass, so requests queued by the
                # finished request's callback get executed.
                running = True
                message = multi.info_read()

            # Callbacks may have queued more than one new request.
            if self._queue and len(self._executing) < self.parallel_limit:
                self._add(min(len(self._queue), self.parallel_limit - len(self._executing)))

            if running:
                # Block until data is received on any of the connections.
                multi.select()

    def _add(self, number=1):
        """Moves `number` requests from the queue into the engine."""
        for i in range(number):
            request = self._queue.popleft()
            request.finalize()
            self._multi.add_handle(request.handle)
            self._executing[request.handle] = request
            log.debug('Admitted %r (%d executing, %d queued)', request,
                len(self._executing), len(self._queue))

    def _remove(self, request):
        """Takes a finished request out of the engine."""
        del self._executing[request.handle]
        self._multi.remove_handle(request.handle)

    def _finished(self, handle, result):
        """Deals with a finished request, admitting the next queued one."""
        request = self._executing[handle]
        try:
            request.complete(result)
        except Exception:
            self._remove(request)
            raise

        if self._queue:
            # Make the engine aware of the next request before letting go of
            # this one, so it never runs empty while work remains.
            self._add()

        self._remove(request)
        log.debug('Retired %r (%d executing, %d queued)', request,
            len(self._executing), len(self._queue))

    def close(self, force=False):
        """Releases the multiplex engine.

        Raises a `RequestError` if requests are still in flight, unless
        `force` is set, in which case they are abandoned without completing.
        Calling `close()` again has no effect.

        """
        if self._multi is None:
            return
        if self._executing:
            if not force:
                raise RequestError('Cannot close a requester with %d requests executing'
                    % len(self._executing))
            log.warning('Abandoning %d executing requests', len(self._executing))
            self._executing.clear()
        self._multi.close()
        self._multi = None
