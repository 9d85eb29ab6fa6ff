"""
General-purpose helpers not related to the Platz API itself
(neither to the credentials nor to the requests nor to the pagination),
which are used to prepare and control the runtime environment.

Helpers do not depend on anything else in the library. As a rule of thumb,
they MUST be abstracted from the library to such an extent that they could be
extracted as reusable snippets. If they implement concepts of the Platz API,
they are not "helpers" (consider making them structs, clients, or kits).
"""
