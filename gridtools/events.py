"""Structured events emitted while planning a grid operation.

The core never prints anything. Instead, it hands events to a *sink*,
i.e., any callable that accepts a single event. The default sink
(``log_event``) forwards them to the ``gridtools`` logger.
"""

import logging
from collections import namedtuple

logger = logging.getLogger('gridtools')


class OperationSelected(namedtuple('OperationSelected', ['operation'])):
    level = logging.INFO

    def message(self):
        return 'operation: {}'.format(self.operation)


class AxisChanged(namedtuple('AxisChanged', ['axis', 'old_lower', 'old_upper',
                                             'new_lower', 'new_upper'])):
    level = logging.INFO

    @property
    def old_size(self):
        return self.old_upper - self.old_lower + 1

    @property
    def new_size(self):
        return self.new_upper - self.new_lower + 1

    def message(self):
        return ('changing axis {} extent from {}:{} (n={}) to {}:{} (n={})'
                .format(self.axis, self.old_lower, self.old_upper,
                        self.old_size, self.new_lower, self.new_upper,
                        self.new_size))


class NoAxesChanged(namedtuple('NoAxesChanged', ['axes'])):
    level = logging.WARNING

    def message(self):
        return 'no axes were changed'


class EmptyMask(namedtuple('EmptyMask', ['shape'])):
    level = logging.ERROR

    def message(self):
        return 'mask image of shape {} is empty'.format(tuple(self.shape))


class OversampleSelected(namedtuple('OversampleSelected',
                                    ['factor', 'auto'])):
    level = logging.INFO

    def message(self):
        return 'oversampling factor: {}{}'.format(
            tuple(self.factor), ' (auto)' if self.auto else '')


def log_event(event):
    """Default sink: forward an event to the ``gridtools`` logger."""
    logger.log(event.level, event.message())


def emit(sink, event):
    """Send an event to a sink (the logging sink if None)."""
    if sink is None:
        sink = log_event
    sink(event)
