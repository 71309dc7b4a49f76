"""Remoting command wire codec and pending response futures."""