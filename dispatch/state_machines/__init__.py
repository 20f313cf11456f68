#State transition rules for orders and couriers.
#Pure mutations on in-memory models; locking is the store's job.
