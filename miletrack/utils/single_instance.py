"""Single capture window per desktop session, over D-Bus.

Two capture windows would compete for the same camera, so the first window
owns a well-known name on the session bus and exports an Activate method.
A second launch calls Activate on the owner, which brings its window to the
front, and then exits.
"""

import logging
from typing import Callable, Optional

try:
    import dbus
    import dbus.service
    from dbus.mainloop.glib import DBusGMainLoop
    DBUS_AVAILABLE = True
except ImportError:
    DBUS_AVAILABLE = False

logger = logging.getLogger(__name__)

SERVICE_NAME = "org.miletrack.CaptureUI"
OBJECT_PATH = "/org/miletrack/CaptureUI"
INTERFACE = "org.miletrack.CaptureUI"


if DBUS_AVAILABLE:

    class CaptureWindowService(dbus.service.Object):
        """Exported object the second launch talks to."""

        def __init__(self, bus_name, on_activate: Callable[[], None]):
            super().__init__(bus_name, OBJECT_PATH)
            self.on_activate = on_activate

        @dbus.service.method(INTERFACE, in_signature="", out_signature="")
        def Activate(self):
            self.on_activate()


class SingleInstanceManager:
    """Owns the capture window's bus name and relays activation requests."""

    def __init__(self):
        self.bus = None
        self.name = None
        self.service = None
        self.activate_handler: Optional[Callable[[], None]] = None

    def acquire(self) -> bool:
        """Claim the bus name.

        Returns:
            True if this process may open the capture window,
            False if another process already owns it
        """
        if not DBUS_AVAILABLE:
            logger.warning("D-Bus unavailable, allowing launch without instance check")
            return True

        try:
            DBusGMainLoop(set_as_default=True)
            self.bus = dbus.SessionBus()
            self.name = dbus.service.BusName(SERVICE_NAME, bus=self.bus, do_not_queue=True)
        except dbus.exceptions.NameExistsException:
            return False
        except dbus.exceptions.DBusException as e:
            logger.warning(f"D-Bus error during instance check: {e}; allowing launch")
            return True

        self.service = CaptureWindowService(self.name, self.handle_activate)
        logger.debug(f"Registered {SERVICE_NAME} on the session bus")
        return True

    def set_activate_handler(self, handler: Optional[Callable[[], None]]):
        """Set what runs when another launch asks for the window."""
        self.activate_handler = handler

    def handle_activate(self):
        if self.activate_handler is None:
            logger.debug("Activation requested before the window exists")
            return
        logger.info("Another launch requested the capture window")
        self.activate_handler()

    def activate_running(self) -> bool:
        """Ask the process that owns the name to show its window.

        Returns:
            True if the running window was reached
        """
        if not DBUS_AVAILABLE or self.bus is None:
            return False

        try:
            proxy = self.bus.get_object(SERVICE_NAME, OBJECT_PATH)
            proxy.Activate(dbus_interface=INTERFACE)
        except dbus.exceptions.DBusException as e:
            logger.warning(f"Could not reach the running capture window: {e}")
            return False
        return True

    def release(self):
        """Unexport the activation object and drop the bus name."""
        self.activate_handler = None
        if self.service is not None:
            self.service.remove_from_connection()
            self.service = None
        self.name = None
