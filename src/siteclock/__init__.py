"""Site Clock package.

Geofenced time clock for construction sites, organised by feature modules
(geo, worksites, attendance, sync, timesheets) with a thin Flask controller
layer over service/repository layers.
"""
