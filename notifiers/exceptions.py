# notifiers/exceptions.py

class NotifierError(Exception):
    pass


class NotifierUnavailable(NotifierError):
    pass


class NotifierTimeout(NotifierError):
    pass


class NotifierRejected(NotifierError):
    pass
